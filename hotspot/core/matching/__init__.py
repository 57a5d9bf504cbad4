from .matcher import MatcherService
from .calculator import CalculatorService, WeightConfig
