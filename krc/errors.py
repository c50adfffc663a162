"""Exceptions raised by the report-card pipeline.

Every failure that should abort a run derives from :class:`PipelineError` so the
command-line entry points can turn it into a single exit message.
"""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for fatal pipeline failures."""


class SourceFileError(PipelineError):
    """A declared source file is absent or cannot be read."""


class SourceSchemaError(PipelineError):
    """A source file is missing columns its declaration relies on."""


class CoercionError(PipelineError):
    """Strict mode found cells that could not be coerced."""


class DuplicateKeyError(PipelineError):
    """A normalized source has more than one row for a join key."""


class JoinError(PipelineError):
    """The join changed the roster row count or produced ambiguous columns."""


class SchemaDriftError(PipelineError):
    """An output table does not match its declared column vocabulary."""


class AnalysisError(PipelineError):
    """The clustering analysis cannot run on the given table."""


class ConfigError(PipelineError, ValueError):
    """A YAML declaration under krc/config is malformed."""
