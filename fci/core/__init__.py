"""Core types: results, exit codes, configuration and project detection."""

from .config import Config, ConfigurationError, load_config
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok
from .workspace import Project, ProjectError, StatePaths, detect_project

__all__ = [
    # config
    "Config",
    "ConfigurationError",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # workspace
    "Project",
    "ProjectError",
    "StatePaths",
    "detect_project",
]
