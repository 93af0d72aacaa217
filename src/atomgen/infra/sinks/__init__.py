"""Output sinks."""

from atomgen.infra.sinks.atom import AtomFileSink

__all__ = ["AtomFileSink"]
