"""Reading test-case documents from disk as Markdown text."""
from __future__ import annotations

import logging
import re
from itertools import groupby
from pathlib import Path

from bs4 import BeautifulSoup, Tag
from docx import Document
from docx.text.paragraph import Paragraph

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = {".md", ".markdown", ".txt"}
HTML_EXTENSIONS = {".html", ".htm"}
DOCX_EXTENSIONS = {".docx"}
SUPPORTED_EXTENSIONS = MARKDOWN_EXTENSIONS | HTML_EXTENSIONS | DOCX_EXTENSIONS

HTML_BLOCK_TAGS = ["h1", "h2", "h3", "h4", "p", "li", "pre"]
DOCX_HEADING_RE = re.compile(r"^Heading\s+(\d)")
FILE_PAGE_NAME_RE = re.compile(r"^([A-Za-z]+Page)", re.IGNORECASE)
DIR_PAGE_NAME_RE = re.compile(r"(?:docs/)?([A-Za-z]+Page)/", re.IGNORECASE)


class DocumentReadError(ValueError):
    """The document could not be read as text."""


def read_document(path: str | Path) -> str:
    """Return the document at ``path`` as Markdown text.

    Raises:
        DocumentReadError: missing file, unsupported extension or content
            that cannot be decoded.
    """
    doc_path = Path(path)
    suffix = doc_path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        expected = ", ".join(sorted(SUPPORTED_EXTENSIONS))
        raise DocumentReadError(
            f"Unsupported document type '{suffix or doc_path.name}'; expected one of {expected}"
        )
    if not doc_path.is_file():
        raise DocumentReadError(f"Document not found: {doc_path}")
    if suffix in DOCX_EXTENSIONS:
        return docx_to_markdown(doc_path)
    text = _read_text(doc_path)
    if suffix in HTML_EXTENSIONS:
        return html_to_markdown(text)
    return text


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        logger.warning("Failed to decode %s: %s", path, exc)
        raise DocumentReadError(f"{path.name} is not UTF-8 text") from exc
    except OSError as exc:
        logger.warning("Failed to read %s: %s", path, exc)
        raise DocumentReadError(f"Failed to read {path}: {exc}") from exc


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _own_text(tag: Tag) -> str:
    parts: list[str] = []
    for child in tag.children:
        if isinstance(child, Tag):
            if child.name in {"ul", "ol"}:
                continue
            parts.append(child.get_text())
        else:
            parts.append(str(child))
    return _collapse("".join(parts))


def html_to_markdown(text: str) -> str:
    soup = BeautifulSoup(text, "lxml")
    for bold in soup.find_all(["strong", "b"]):
        content = bold.get_text(strip=True)
        if content:
            bold.replace_with(f"**{content}**")
        else:
            bold.decompose()
    lines: list[str] = []
    for tag in soup.find_all(HTML_BLOCK_TAGS):
        if tag.find_parent(["pre"]) is not None:
            continue
        if tag.name == "p" and tag.find_parent(["li"]) is not None:
            continue
        if tag.name == "pre":
            lines.append("```")
            lines.extend(tag.get_text().splitlines())
            lines.append("```")
            continue
        if tag.name in {"h1", "h2", "h3", "h4"}:
            level = int(tag.name[1])
            lines.append(f"{'#' * level} {_collapse(tag.get_text())}")
            continue
        content = _own_text(tag)
        if not content:
            continue
        if tag.name == "li":
            parent = tag.find_parent(["ol", "ul"])
            if parent is not None and parent.name == "ol":
                position = 1 + len(tag.find_previous_siblings("li"))
                lines.append(f"{position}. {content}")
            else:
                lines.append(f"- {content}")
        else:
            lines.append(content)
    return "\n".join(lines)


def _paragraph_text(paragraph: Paragraph) -> str:
    parts: list[str] = []
    # adjacent bold runs form one label
    for bold, runs in groupby(paragraph.runs, key=lambda run: bool(run.bold)):
        text = "".join(run.text for run in runs)
        if bold and text.strip():
            parts.append(f"**{text.strip()}**")
        else:
            parts.append(text)
    return "".join(parts).strip()


def docx_to_markdown(path: Path) -> str:
    try:
        document = Document(str(path))
    except Exception as exc:
        logger.warning("Failed to read DOCX %s: %s", path, exc)
        raise DocumentReadError(f"{path.name} is not a readable Word document") from exc
    lines: list[str] = []
    for paragraph in document.paragraphs:
        style = paragraph.style.name if paragraph.style is not None else ""
        if style == "Title":
            lines.append(f"# {paragraph.text.strip()}")
            continue
        heading = DOCX_HEADING_RE.match(style)
        if heading:
            lines.append(f"{'#' * int(heading.group(1))} {paragraph.text.strip()}")
            continue
        text = _paragraph_text(paragraph)
        if style.startswith("List") and text:
            lines.append(f"- {text}")
        else:
            lines.append(text)
    return "\n".join(lines)


def extract_page_name_from_path(path: str | Path) -> str | None:
    """Page identifier such as ``LoginPage`` from a file or directory name."""
    doc_path = Path(path)
    match = FILE_PAGE_NAME_RE.match(doc_path.name)
    if match:
        return match.group(1)
    match = DIR_PAGE_NAME_RE.search(doc_path.as_posix())
    if match:
        return match.group(1)
    return None
