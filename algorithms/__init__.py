from .math_tools import MathTools
from .streak_calculator import StreakCalculator

__all__ = ["MathTools", "StreakCalculator"]
