"""Map a fence's declared tag and body shape to a preview language."""

from __future__ import annotations

from streamcanvas.schemas.streaming import Artifact, ArtifactLanguage, CodeBlock

_REACT_TAGS = frozenset({"react", "jsx", "tsx"})
_TYPESCRIPT_TAGS = frozenset({"typescript", "ts"})
_REACT_IDIOMS = ("useState", "useEffect")
_MARKUP_STARTS = ("<!doctype", "<html")


def classify_language(tag: str, code: str) -> ArtifactLanguage:
    """Classify a code block into the closed ArtifactLanguage set.

    Content sniffing overrides a misleading tag where the body is
    unambiguous (hooks imply React, a doctype implies HTML). Anything
    unrecognized is treated as plain JavaScript.
    """
    tag = tag.lower().strip()
    body = code.lstrip()

    if tag == "svg" or body.startswith("<svg"):
        return ArtifactLanguage.SVG
    if tag == "mermaid":
        return ArtifactLanguage.MERMAID
    if tag in _REACT_TAGS or any(idiom in code for idiom in _REACT_IDIOMS):
        return ArtifactLanguage.REACT
    if tag in _TYPESCRIPT_TAGS:
        return ArtifactLanguage.TYPESCRIPT
    if tag == "html" or body.lower().startswith(_MARKUP_STARTS):
        return ArtifactLanguage.HTML
    if tag == "css":
        return ArtifactLanguage.CSS
    return ArtifactLanguage.JAVASCRIPT


def artifact_title(language: ArtifactLanguage) -> str:
    """Title shown above the preview, e.g. ``Html Artifact``."""
    value = str(language)
    return f"{value[:1].upper()}{value[1:]} Artifact"


def build_artifact(
    block: CodeBlock,
    *,
    is_streaming: bool,
    placeholder: str = "",
) -> Artifact:
    """Turn an extracted block into the payload for the preview surface."""
    language = classify_language(block.language, block.raw_text)
    return Artifact(
        code=block.raw_text or placeholder,
        language=language,
        title=artifact_title(language),
        is_streaming=is_streaming,
    )
