"""Interfaces and data for operations on PDF files."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


class PdfEngineMethodNotSupportedError(NotImplementedError):
    """A method of the engine is not supported by its implementation."""

    def __init__(self, message: str = "method not supported") -> None:
        super().__init__(message)


class PdfSplitModeNotSupportedError(ValueError):
    """The engine does not support the requested split mode."""

    def __init__(self, message: str = "split mode not supported") -> None:
        super().__init__(message)


class PdfFormatNotSupportedError(ValueError):
    """The engine does not support the requested PDF format conversion."""

    def __init__(self, message: str = "PDF format not supported") -> None:
        super().__init__(message)


class PdfEngineMetadataValueNotSupportedError(ValueError):
    """A metadata value is not supported."""

    def __init__(self, message: str = "metadata value not supported") -> None:
        super().__init__(message)


SPLIT_MODE_INTERVALS = "intervals"
SPLIT_MODE_PAGES = "pages"


@dataclass(frozen=True)
class SplitMode:
    """How to split a PDF.

    ``mode`` is ``"intervals"`` or ``"pages"``; ``span`` holds the intervals
    or the page ranges; ``unify`` puts the extracted pages into a single file
    (``"pages"`` mode only).
    """

    mode: str
    span: str
    unify: bool = False


PDF_A_1A = "PDF/A-1a"
PDF_A_1B = "PDF/A-1b"
PDF_A_2A = "PDF/A-2a"
PDF_A_2B = "PDF/A-2b"
PDF_A_2U = "PDF/A-2u"
PDF_A_3A = "PDF/A-3a"
PDF_A_3B = "PDF/A-3b"
PDF_A_3U = "PDF/A-3u"


@dataclass(frozen=True)
class PdfFormats:
    """Target formats of a conversion: a PDF/A variant and PDF/UA compliance."""

    pdf_a: str = ""
    pdf_ua: bool = False


@runtime_checkable
class PdfEngine(Protocol):
    """Operations on PDF files."""

    def merge(self, logger: logging.Logger, input_paths: list[str], output_path: str) -> None:
        """Combine the PDFs, in the given order, into one."""

    def split(
        self, logger: logging.Logger, mode: SplitMode, input_path: str, output_dir_path: str
    ) -> list[str]:
        """Split a PDF and return the paths of the parts."""

    def flatten(self, logger: logging.Logger, input_path: str) -> None:
        """Merge annotation appearances into the page content, irreversibly."""

    def convert(
        self, logger: logging.Logger, formats: PdfFormats, input_path: str, output_path: str
    ) -> None:
        """Convert a PDF to the given formats; do nothing without a format."""

    def read_metadata(self, logger: logging.Logger, input_path: str) -> dict[str, Any]:
        """Extract the metadata of a PDF."""

    def write_metadata(
        self, logger: logging.Logger, metadata: dict[str, Any], input_path: str
    ) -> None:
        """Write metadata into a PDF."""


@runtime_checkable
class PdfEngineProvider(Protocol):
    """A module which creates a :class:`PdfEngine` for its consumers."""

    def pdf_engine(self) -> PdfEngine: ...