"""Archive adapters."""

from cnblogs_harvester.adapters.archive.text_archive import SEPARATOR, TextArchiveWriter

__all__ = ["TextArchiveWriter", "SEPARATOR"]
