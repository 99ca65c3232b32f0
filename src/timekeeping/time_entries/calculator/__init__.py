from .base import HoursCalculator
from .tiered_calculator import TieredHoursCalculator, calculate_hours

__all__ = ["HoursCalculator", "TieredHoursCalculator", "calculate_hours"]
