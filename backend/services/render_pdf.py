"""
PDF rendering service.

Draws a DocumentPlan onto a reportlab canvas: header on every page, the
planned blocks in order, then the page footer. Images are fetched one block
at a time while drawing; a block whose image cannot be loaded is drawn
text-only.
"""
import logging
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as pdf_canvas

from services.image_fetch import fetch_image
from services.layout_engine import (
    BlockKind,
    DocumentPlan,
    DocumentTheme,
    LayoutBlock,
    plan_document,
)
from services.text_format import build_pdf_filename, wrap_lines
from settings import settings

logger = logging.getLogger(__name__)

ImageLoader = Callable[[str], Optional[ImageReader]]

FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_ITALIC = "Helvetica-Oblique"

TITLE_LEADING = 13.0
BODY_LEADING = 11.0


def _rgb(color) -> tuple:
    r, g, b = color
    return (r / 255.0, g / 255.0, b / 255.0)


class ItineraryPdfRenderer:
    """Draws one document plan. Not reusable across documents."""

    def __init__(
        self,
        target: Union[str, Path, Any],
        theme: Optional[DocumentTheme] = None,
        image_loader: Optional[ImageLoader] = None,
        include_images: bool = True,
    ) -> None:
        self.theme = theme or DocumentTheme()
        self.image_loader = image_loader or fetch_image
        self.include_images = include_images
        if isinstance(target, Path):
            target = str(target)
        self.canvas = pdf_canvas.Canvas(
            target,
            pagesize=(self.theme.page_width, self.theme.page_height),
        )
        self.images_embedded = 0

    def _baseline(self, top: float) -> float:
        """Convert a top-down offset into reportlab's bottom-up y."""
        return self.theme.page_height - top

    def _set_font(self, name: str, size: float, color) -> None:
        self.canvas.setFont(name, size)
        self.canvas.setFillColorRGB(*_rgb(color))

    def draw_header(self, plan: DocumentPlan) -> None:
        c = self.canvas
        t = self.theme
        title = wrap_lines(plan.title, FONT_BOLD, 24, t.content_width, 1)
        self._set_font(FONT_BOLD, 24, t.primary_color)
        c.drawString(t.margin, self._baseline(50), title[0] if title else "")

        self._set_font(FONT_REGULAR, 12, t.text_color)
        info_y = 75.0
        if plan.traveler_name:
            c.drawString(t.margin, self._baseline(info_y), f"Traveler: {plan.traveler_name}")
            info_y += 18
        if plan.date_range:
            c.drawString(t.margin, self._baseline(info_y), f"Travel Dates: {plan.date_range}")

        c.setStrokeColorRGB(*_rgb(t.divider_color))
        c.setLineWidth(1)
        c.line(t.margin, self._baseline(95), t.page_width - t.margin, self._baseline(95))

    def draw_footer(self, plan: DocumentPlan, page_number: int) -> None:
        c = self.canvas
        t = self.theme
        self._set_font(FONT_REGULAR, 10, t.light_text_color)
        footer_text = f"Page {page_number}"
        width = c.stringWidth(footer_text, FONT_REGULAR, 10)
        y = self._baseline(t.page_height - 25)
        c.drawString((t.page_width - width) / 2, y, footer_text)
        c.drawString(t.margin, y, f"Generated: {plan.generated_on.isoformat()}")

    def draw_day_banner(self, block: LayoutBlock) -> None:
        c = self.canvas
        t = self.theme
        c.setFillColorRGB(*_rgb(t.background_color))
        c.roundRect(
            t.margin, self._baseline(block.y + block.height),
            t.content_width, block.height, 6, stroke=0, fill=1,
        )
        self._set_font(FONT_BOLD, 16, block.color or t.primary_color)
        c.drawString(t.margin + 15, self._baseline(block.y + 20), block.label)

        self._set_font(FONT_REGULAR, 11, t.text_color)
        c.drawString(t.margin + 15, self._baseline(block.y + 35), f"Departure: {block.departure}")
        if block.distance != "N/A":
            distance_text = f"Distance: {block.distance}"
            width = c.stringWidth(distance_text, FONT_REGULAR, 11)
            c.drawString(
                t.page_width - t.margin - width - 15,
                self._baseline(block.y + 35),
                distance_text,
            )

    def draw_notice(self, block: LayoutBlock) -> None:
        t = self.theme
        self._set_font(FONT_ITALIC, 11, block.color or t.light_text_color)
        self.canvas.drawString(t.margin + 15, self._baseline(block.y + 20), block.title)

    def _draw_image(self, image: ImageReader, block: LayoutBlock) -> bool:
        t = self.theme
        size = t.card_image_size
        try:
            self.canvas.drawImage(
                image,
                t.margin + 15,
                self._baseline(block.y + 10 + size),
                width=size,
                height=size,
                preserveAspectRatio=True,
                anchor="c",
            )
        except Exception as exc:
            logger.warning("Failed to embed image %s: %s", block.image_url, exc)
            return False
        self.images_embedded += 1
        return True

    def draw_card(self, block: LayoutBlock, image: Optional[ImageReader] = None) -> None:
        """Draw one content card, with image when one was loaded."""
        c = self.canvas
        t = self.theme
        color = block.color or t.primary_color
        bottom = self._baseline(block.y + block.height)

        c.setFillColorRGB(*_rgb(t.card_background_color))
        c.setStrokeColorRGB(*_rgb(t.divider_color))
        c.setLineWidth(0.5)
        c.roundRect(t.margin, bottom, t.content_width, block.height, 4, stroke=1, fill=1)
        c.setFillColorRGB(*_rgb(color))
        c.rect(t.margin, bottom, 4, block.height, stroke=0, fill=1)

        text_x = t.margin + 15
        if image is not None and self._draw_image(image, block):
            text_x = t.margin + t.card_image_size + 35
        text_width = t.margin + t.content_width - text_x - 10

        if block.label:
            self._set_font(FONT_BOLD, 10, color)
            c.drawString(text_x, self._baseline(block.y + 18), block.label.upper())

        title_y = block.y + (35 if block.label else 25)
        title_lines = wrap_lines(block.title, FONT_BOLD, 13, text_width, t.title_max_lines)
        self._set_font(FONT_BOLD, 13, t.text_color)
        for i, line in enumerate(title_lines):
            c.drawString(text_x, self._baseline(title_y + i * TITLE_LEADING), line)

        next_y = title_y + len(title_lines) * TITLE_LEADING + 2
        if block.description:
            desc_lines = wrap_lines(block.description, FONT_REGULAR, 10, text_width, t.description_max_lines)
            self._set_font(FONT_REGULAR, 10, t.light_text_color)
            for i, line in enumerate(desc_lines):
                c.drawString(text_x, self._baseline(next_y + i * BODY_LEADING), line)
            next_y += len(desc_lines) * BODY_LEADING + 2

        if block.location:
            location = wrap_lines(block.location, FONT_ITALIC, 10, text_width, 1)
            self._set_font(FONT_ITALIC, 10, t.accent_color)
            c.drawString(text_x, self._baseline(next_y), location[0] if location else "")

    def _load_image(self, block: LayoutBlock) -> Optional[ImageReader]:
        if not self.include_images or not block.image_url:
            return None
        try:
            return self.image_loader(block.image_url)
        except Exception as exc:
            logger.warning("Image loader failed for %s: %s", block.image_url, exc)
            return None

    def render(self, plan: DocumentPlan) -> None:
        for page in plan.pages:
            if page.page_number > 1:
                self.canvas.showPage()
            self.draw_header(plan)
            for block in page.blocks:
                if block.kind == BlockKind.DAY_BANNER:
                    self.draw_day_banner(block)
                elif block.kind == BlockKind.CARD:
                    self.draw_card(block, self._load_image(block))
                else:
                    self.draw_notice(block)
            self.draw_footer(plan, page.page_number)
        self.canvas.save()


def render_plan_to_pdf(
    plan: DocumentPlan,
    target: Union[str, Path, Any],
    theme: Optional[DocumentTheme] = None,
    image_loader: Optional[ImageLoader] = None,
    include_images: bool = True,
) -> ItineraryPdfRenderer:
    """Draw a plan to a path or binary file object."""
    renderer = ItineraryPdfRenderer(target, theme=theme, image_loader=image_loader, include_images=include_images)
    renderer.render(plan)
    return renderer


def render_itinerary_pdf(
    itinerary: Any,
    output_dir: Optional[Union[str, Path]] = None,
    title: str = "Travel Itinerary",
    traveler_name: str = "",
    date_range: str = "",
    include_images: Optional[bool] = None,
    theme: Optional[DocumentTheme] = None,
    image_loader: Optional[ImageLoader] = None,
    on: Optional[date] = None,
) -> Path:
    """
    Lay out and render an itinerary to '<output_dir>/<title>_<date>.pdf'.

    Raises:
        EmptyItineraryError: for an empty or non-list itinerary; no file is written
    """
    theme = theme or DocumentTheme()
    generated_on = on or date.today()
    plan = plan_document(
        itinerary,
        title=title,
        traveler_name=traveler_name,
        date_range=date_range,
        theme=theme,
        generated_on=generated_on,
    )

    out_dir = Path(output_dir or settings.PDF_OUTPUT_DIR)
    out_dir.mkdir(parents=True, exist_ok=True)
    output_path = out_dir / build_pdf_filename(title, generated_on)

    if include_images is None:
        include_images = settings.PDF_INCLUDE_IMAGES
    renderer = render_plan_to_pdf(
        plan,
        output_path,
        theme=theme,
        image_loader=image_loader,
        include_images=include_images,
    )
    logger.info(
        "PDF generated: %s (%d pages, %d images)",
        output_path,
        plan.page_count,
        renderer.images_embedded,
    )
    return output_path


def render_itinerary_pdf_bytes(
    itinerary: Any,
    title: str = "Travel Itinerary",
    traveler_name: str = "",
    date_range: str = "",
    include_images: Optional[bool] = None,
    theme: Optional[DocumentTheme] = None,
    image_loader: Optional[ImageLoader] = None,
    on: Optional[date] = None,
) -> Tuple[str, bytes]:
    """
    Lay out and render an itinerary in memory.

    Returns the download filename and the PDF bytes; nothing is written to disk.

    Raises:
        EmptyItineraryError: for an empty or non-list itinerary
    """
    theme = theme or DocumentTheme()
    generated_on = on or date.today()
    plan = plan_document(
        itinerary,
        title=title,
        traveler_name=traveler_name,
        date_range=date_range,
        theme=theme,
        generated_on=generated_on,
    )
    if include_images is None:
        include_images = settings.PDF_INCLUDE_IMAGES

    buf = BytesIO()
    renderer = render_plan_to_pdf(
        plan,
        buf,
        theme=theme,
        image_loader=image_loader,
        include_images=include_images,
    )
    filename = build_pdf_filename(title, generated_on)
    logger.info(
        "PDF generated in memory: %s (%d pages, %d images)",
        filename,
        plan.page_count,
        renderer.images_embedded,
    )
    return filename, buf.getvalue()
