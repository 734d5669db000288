"""Code-artifact extraction from streamed assistant text."""

from streamcanvas.artifacts.extractor import (
    extract_final,
    extract_live,
    find_fences,
    strip_code_blocks,
)
from streamcanvas.artifacts.language import artifact_title, build_artifact, classify_language
from streamcanvas.artifacts.repair import looks_corrupted, repair_body

__all__ = [
    "artifact_title",
    "build_artifact",
    "classify_language",
    "extract_final",
    "extract_live",
    "find_fences",
    "looks_corrupted",
    "repair_body",
    "strip_code_blocks",
]
