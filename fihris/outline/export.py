"""
Export the committed outline as a downloadable file.

Markdown is the primary artifact; a right-to-left Word document is also
available.
"""

import io
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from docx import Document
from docx.shared import Pt
from docx.enum.text import WD_PARAGRAPH_ALIGNMENT
from docx.oxml.ns import qn
from docx.oxml import OxmlElement
from .document import IndexDocument


EXPORT_HEADER = "فهرس البحث"

MARKDOWN_FILENAME = "فهرس_البحث.md"
MARKDOWN_MIME_TYPE = "text/markdown"

DOCX_FILENAME = "فهرس_البحث.docx"
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

EXPORT_FORMATS = ('markdown', 'word')

_MD_HEADING = re.compile(r'^(#{1,6})\s+(.*)$')
_SUB_HEADING = re.compile(r'^\d+\.\d+\.?\s')
_TOP_HEADING = re.compile(r'^\d+\.\s')
_BULLET = re.compile(r'^[-*•]\s+(.*)$')


class ExportError(Exception):
    """Raised when an export format is unknown."""
    pass


@dataclass(frozen=True)
class ExportArtifact:
    """A file offered to the user for download."""

    filename: str
    mime_type: str
    content: bytes

    def save(self, output_dir: str) -> Path:
        """
        Write the artifact into a directory.

        Args:
            output_dir: Target directory (created if needed)

        Returns:
            Path of the written file
        """
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        path = out / self.filename
        path.write_bytes(self.content)
        return path


def render_markdown(document: IndexDocument) -> str:
    """Header line followed by the outline body."""
    return f"# {EXPORT_HEADER}\n\n{document.raw_text}"


def export_markdown(document: IndexDocument) -> ExportArtifact:
    """Build the Markdown download."""
    return ExportArtifact(
        filename=MARKDOWN_FILENAME,
        mime_type=MARKDOWN_MIME_TYPE,
        content=render_markdown(document).encode('utf-8'),
    )


class DocXFormatter:
    """Generate right-to-left Word documents for outlines."""

    @staticmethod
    def format_index(document: IndexDocument, template_path: Optional[str] = None) -> Document:
        """
        Lay the outline out as headings, bullets and paragraphs.

        Args:
            document: Committed outline
            template_path: Optional .docx template

        Returns:
            Document object
        """
        doc = Document(template_path) if template_path else Document()

        title_para = doc.add_heading(EXPORT_HEADER, level=0)
        title_para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
        DocXFormatter._set_rtl(title_para)

        for line in document.raw_text.splitlines():
            line = line.strip()
            if not line:
                continue

            md = _MD_HEADING.match(line)
            bullet = _BULLET.match(line)
            if md:
                para = doc.add_heading(md.group(2), level=min(len(md.group(1)), 3))
            elif _SUB_HEADING.match(line):
                para = doc.add_heading(line, level=2)
            elif _TOP_HEADING.match(line):
                para = doc.add_heading(line, level=1)
            elif bullet:
                para = doc.add_paragraph(bullet.group(1), style='List Bullet')
            else:
                para = doc.add_paragraph(line)
                DocXFormatter._set_font_size(para, 12)

            DocXFormatter._set_rtl(para)

        return doc

    @staticmethod
    def to_artifact(doc: Document) -> ExportArtifact:
        """Serialize a document into a download artifact."""
        buffer = io.BytesIO()
        doc.save(buffer)
        return ExportArtifact(
            filename=DOCX_FILENAME,
            mime_type=DOCX_MIME_TYPE,
            content=buffer.getvalue(),
        )

    @staticmethod
    def _set_rtl(paragraph):
        """Mark paragraph and runs as right-to-left."""
        p_pr = paragraph._p.get_or_add_pPr()
        bidi = OxmlElement('w:bidi')
        bidi.set(qn('w:val'), '1')
        p_pr.append(bidi)
        paragraph.alignment = paragraph.alignment or WD_PARAGRAPH_ALIGNMENT.RIGHT

        for run in paragraph.runs:
            r_pr = run._r.get_or_add_rPr()
            rtl = OxmlElement('w:rtl')
            rtl.set(qn('w:val'), '1')
            r_pr.append(rtl)

    @staticmethod
    def _set_font_size(paragraph, size: int):
        """Set font size for all runs in paragraph."""
        for run in paragraph.runs:
            run.font.size = Pt(size)


def export_document(document: IndexDocument, fmt: str = 'markdown') -> ExportArtifact:
    """
    Project a committed outline into a download artifact.

    Args:
        document: Committed outline
        fmt: 'markdown' or 'word'

    Raises:
        ExportError: If the format is unknown
    """
    if fmt == 'markdown':
        return export_markdown(document)
    if fmt == 'word':
        return DocXFormatter.to_artifact(DocXFormatter.format_index(document))
    raise ExportError(f"Unknown export format: {fmt}. Choose from {', '.join(EXPORT_FORMATS)}")
