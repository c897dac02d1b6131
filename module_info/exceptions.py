"""
Exceptions raised while looking up and reporting kernel module metadata.
"""


class ModinfoError(Exception):
    """Base class for all module metadata errors."""


class ModuleNotFound(ModinfoError):
    """Raised when an identifier is neither a module file nor a known alias."""

    def __init__(self, identifier: str, is_path: bool = False):
        self.identifier = identifier
        self.is_path = is_path
        if is_path:
            message = f"Module file {identifier} not found."
        else:
            message = f"Module alias {identifier} not found."
        super().__init__(message)


class MetadataRetrievalFailure(ModinfoError):
    """Raised when a resolved module's metadata cannot be read."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Could not get modinfo from '{name}': {reason}")


class MalformedParameterRecord(ModinfoError):
    """Raised for a "parm" or "parmtype" value without a ':' separator."""

    def __init__(self, key: str, value: str):
        self.key = key
        self.value = value
        super().__init__(f"Found invalid \"{key}={value}\": missing ':'")
