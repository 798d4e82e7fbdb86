import io

import pymupdf

from doclyze.rendering.base import BaseRenderer, RenderOptions
from doclyze.rendering.exceptions import RenderError

_POINTS_PER_INCH = 72


class PyMuPdfRenderer(BaseRenderer):
    """Renders HTML to PDF in-process with PyMuPDF's Story layout engine."""

    def render_to_document(self, markup: str, options: RenderOptions | None = None) -> bytes:
        options = options or RenderOptions()
        mediabox = pymupdf.paper_rect(options.paper.lower())
        if mediabox.is_empty:
            raise RenderError(f"Unsupported paper size: {options.paper}")
        try:
            margin = options.margin_inches * _POINTS_PER_INCH
            where = pymupdf.Rect(
                mediabox.x0 + margin,
                mediabox.y0 + margin,
                mediabox.x1 - margin,
                mediabox.y1 - margin,
            )
            story = pymupdf.Story(html=markup)
            buffer = io.BytesIO()
            writer = pymupdf.DocumentWriter(buffer)
            more = 1
            while more:
                device = writer.begin_page(mediabox)
                more, _ = story.place(where)
                story.draw(device)
                writer.end_page()
            writer.close()
        except Exception as exc:
            raise RenderError(f"pymupdf rendering failed: {exc}") from exc
        return buffer.getvalue()
