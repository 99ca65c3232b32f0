"""Contractor timekeeping package.

Organized by feature modules (time_entries, absences, approvals, autoclocking,
reports, ...) with a thin Flask controller layer over service/repository layers.
"""
