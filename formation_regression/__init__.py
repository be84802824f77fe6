"""UI regression suites for the FDMS live board's flight formation features."""

from .config import RegressionConfig, load_config
from .runner import SuiteReport, SuiteRunner

__all__ = ["RegressionConfig", "load_config", "SuiteReport", "SuiteRunner"]
