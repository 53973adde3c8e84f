"""Custom exceptions used by the ebpf_exporter package."""


class ExporterError(RuntimeError):
    """Base class for exporter errors."""


class BPFUnavailableError(ExporterError):
    """Raised when the BCC runtime is missing."""


class ConfigError(ExporterError):
    """Raised when the configuration cannot be loaded."""


class AttachError(ExporterError):
    """Raised when programs fail to load or attach their probes."""


class DuplicateProgramError(AttachError):
    """Raised when two programs share the same name."""


class ModuleLoadError(AttachError):
    """Raised when a program's BPF code fails to compile or load."""


class ProbeLoadError(AttachError):
    """Raised when a probe function cannot be loaded from a module."""


class ProbeAttachError(AttachError):
    """Raised when a loaded probe cannot be attached to its kernel symbol."""


class ProgramNotAttachedError(ExporterError):
    """Raised when a program's module is looked up before attachment."""


class TableReadError(ExporterError):
    """Raised when a kernel table cannot be turned into metric values."""


class KeyArityError(TableReadError):
    """Raised when a table key does not have one field per label."""


class LabelDecodeError(TableReadError):
    """Raised when a key field cannot be decoded for its label."""


class ValueParseError(TableReadError):
    """Raised when a table value is not an unsigned integer."""


class BucketParseError(ExporterError):
    """Raised when a histogram bucket label is not an unsigned integer."""


class HistogramTransformError(ExporterError):
    """Raised when raw histogram buckets cannot be made cumulative."""


class TableDumpError(ExporterError):
    """Raised when the debug table dump cannot be built."""
