"""
Module Info Package

Reads the descriptive metadata embedded in Linux kernel modules (author,
license, description, parameters, aliases, version info) and renders it
as key/value text for people and scripts.
"""

from .models import RawPair, ParameterEntry, RenderConfig, ModuleRecord
from .exceptions import (
    ModinfoError, ModuleNotFound, MetadataRetrievalFailure, MalformedParameterRecord
)
from .aggregators import ParameterAggregator
from .filters import FieldFilter
from .formatters import BaseFormatter, DefaultFormatter, FilteredFormatter, get_formatter
from .parsers import ModinfoParser, BuiltinModinfoParser, ModuleResolver

__version__ = "1.0.0"
__author__ = "Kernel Module Info"

__all__ = [
    "RawPair",
    "ParameterEntry",
    "RenderConfig",
    "ModuleRecord",
    "ModinfoError",
    "ModuleNotFound",
    "MetadataRetrievalFailure",
    "MalformedParameterRecord",
    "ParameterAggregator",
    "FieldFilter",
    "BaseFormatter",
    "DefaultFormatter",
    "FilteredFormatter",
    "get_formatter",
    "ModinfoParser",
    "BuiltinModinfoParser",
    "ModuleResolver"
]
