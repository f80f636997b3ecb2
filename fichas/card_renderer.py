"""Card renderer: PIL drawing of the 1080x1920 ficha cards.

Renders the personal-data card, the salary / phone / company table cards and
the two-column continuation pages that carry company entries which did not
fit on the personal card.
"""

import io
import random
from enum import Enum
from typing import Optional, Sequence

from PIL import Image, ImageDraw

from .assets import AssetFetcher, FetchResult
from .record_parser import CompanyEntry, ParsedRecord
from .section_packer import FOOTER_BOUNDARY, LayoutMode, SectionPacker
from .text_layout import (
    FIELD_SPACING_ADJUST,
    PLACEHOLDER,
    FontSet,
    LayoutCursor,
    TextLayout,
    fit_text,
)
from .utils import get_logger

logger = get_logger(__name__)

# Layout constants
WIDTH = 1080
HEIGHT = 1920
MARGIN_H = 50
LINE_HEIGHT = 40
HEADING_SPACING = 50
CONTENT_WIDTH = WIDTH - 2 * MARGIN_H

BG_COLOR = (0, 51, 102)
WHITE = (255, 255, 255)
# 60% white over the background
RULE_COLOR = (153, 173, 194)

# Personal card geometry
CONTENT_TOP = 300
COLUMN_RIGHT_X = WIDTH // 2 + MARGIN_H
COLUMN_WIDTH = WIDTH // 2 - MARGIN_H - 25
SEPARATOR_X = WIDTH // 2
PHOTO_SIZE = (350, 400)
QR_SIZE = 250
QR_MIN_OFFSET = 450

# Table / continuation card geometry
TITLE_Y = 170
SUMMARY_Y = 250
TABLE_TOP = 310
MAX_TABLE_ROWS = 40

FOOTER_Y = HEIGHT - 100
DISCLAIMER = (
    "Esta imagen es solo informativa. No representa un documento oficial ni tiene validez legal."
)
FALLBACK_TITLE = "Consulta Ciudadana"

WATERMARK_TEXT = "RENIEC"
WATERMARK_PITCH = (200, 100)
WATERMARK_TILE = (140, 50)
WATERMARK_ANGLE = 15
WATERMARK_OPACITY = 0.1


class CardKind(Enum):
    """Card categories; the value is the suffix used in file and URL names."""

    PERSONAL = "PERSONALES"
    SALARY = "SUELDOS"
    PHONE = "TELEFONOS"
    COMPANY = "EMPRESAS"


# kind -> (title, record list attribute, [(header, entry attribute, width px, char limit)])
TABLE_LAYOUTS = {
    CardKind.SALARY: (
        "Historial de Sueldos",
        "salaries",
        [
            ("RUC", "tax_id", 160, None),
            ("EMPRESA", "employer", 340, 30),
            ("SIT.", "status", 120, 5),
            ("SUELDO", "amount", 160, None),
            ("PERIODO", "period", 200, None),
        ],
    ),
    CardKind.PHONE: (
        "Registros Telefónicos",
        "phones",
        [
            ("TELÉFONO", "phone", 250, None),
            ("PLAN", "plan", 200, 20),
            ("FUENTE", "source", 330, 30),
            ("PERIODO", "period", 200, 10),
        ],
    ),
    CardKind.COMPANY: (
        "Registros de Empresas",
        "companies",
        [
            ("RUC", "tax_id", 160, None),
            ("RAZÓN SOCIAL", "business_name", 420, 45),
            ("CARGO", "position", 250, 25),
            ("DESDE", "since", 150, None),
        ],
    ),
}


def company_block_fields(entry: CompanyEntry) -> list[tuple[str, str]]:
    """The three label:value lines a company entry occupies in a packed section."""
    position = entry.position
    if entry.since:
        position = f"{position} (desde {entry.since})" if position else f"desde {entry.since}"
    return [
        ("Razón Social", entry.business_name),
        ("RUC", entry.tax_id),
        ("Cargo", position),
    ]


class Canvas:
    """One card surface. Drawing is refused once it has been encoded to PNG."""

    def __init__(self, width: int = WIDTH, height: int = HEIGHT, background=BG_COLOR):
        self._image = Image.new("RGB", (width, height), background)
        self._draw = ImageDraw.Draw(self._image)
        self._png: Optional[bytes] = None

    @property
    def size(self) -> tuple[int, int]:
        return self._image.size

    @property
    def finalized(self) -> bool:
        return self._png is not None

    def _check_open(self) -> None:
        if self.finalized:
            raise RuntimeError("Canvas already finalized")

    @property
    def draw(self) -> ImageDraw.ImageDraw:
        self._check_open()
        return self._draw

    def paste(self, image: Image.Image, xy: tuple[int, int]) -> None:
        self._check_open()
        image = image.convert("RGBA")
        self._image.paste(image, xy, image)

    def overlay(self, layer: Image.Image) -> None:
        """Alpha-composite a full-size RGBA layer over the canvas."""
        self._check_open()
        merged = Image.alpha_composite(self._image.convert("RGBA"), layer)
        self._image = merged.convert("RGB")
        self._draw = ImageDraw.Draw(self._image)

    def line(self, points: Sequence[tuple[int, int]], fill=WHITE, width: int = 2) -> None:
        self._check_open()
        self._draw.line(points, fill=fill, width=width)

    def finalize(self) -> bytes:
        """Encode the card as PNG. Further drawing raises RuntimeError."""
        if self._png is None:
            buffer = io.BytesIO()
            self._image.save(buffer, "PNG")
            self._png = buffer.getvalue()
        return self._png


class CardRenderer:
    """Draws the fixed card layouts onto fresh canvases."""

    def __init__(
        self,
        fonts: FontSet,
        assets: AssetFetcher,
        icon_url: str,
        qr_url: str,
        rng: Optional[random.Random] = None,
    ):
        self.fonts = fonts
        self.layout = TextLayout(fonts, line_height=LINE_HEIGHT)
        self.assets = assets
        self.icon_url = icon_url
        self.qr_url = qr_url
        self.rng = rng or random.Random()

    def render_card(self, kind: CardKind, record: ParsedRecord) -> Canvas:
        """Render a single card of ``kind`` without pagination."""
        if kind is CardKind.PERSONAL:
            canvas, _ = self.render_personal_page(record)
            return canvas
        return self.render_table(kind, record)

    # ==================================================================
    # Common elements
    # ==================================================================

    def new_canvas(self) -> Canvas:
        canvas = Canvas()
        canvas.overlay(self._watermark_layer(canvas.size))
        return canvas

    def _watermark_layer(self, size: tuple[int, int]) -> Image.Image:
        layer = Image.new("RGBA", size, (0, 0, 0, 0))
        alpha = int(255 * WATERMARK_OPACITY)
        for x in range(0, size[0], WATERMARK_PITCH[0]):
            for y in range(0, size[1], WATERMARK_PITCH[1]):
                tile = Image.new("RGBA", WATERMARK_TILE, (0, 0, 0, 0))
                ImageDraw.Draw(tile).text(
                    (0, 0), WATERMARK_TEXT, font=self.fonts.heading, fill=(255, 255, 255, alpha)
                )
                angle = self.rng.uniform(-WATERMARK_ANGLE, WATERMARK_ANGLE)
                tile = tile.rotate(angle, resample=Image.Resampling.BICUBIC, expand=True)
                layer.alpha_composite(tile, dest=(x, y))
        return layer

    def _draw_header(self, canvas: Canvas, box: tuple[int, int], top: int) -> None:
        """Centered app icon inside ``box``; the fallback title never raises."""
        result = self.assets.fetch_image(self.icon_url)
        if not result.ok:
            logger.warning(f"Header icon unavailable ({result.error}), printing title instead")
            canvas.draw.text((MARGIN_H, top), FALLBACK_TITLE, font=self.fonts.title, fill=WHITE)
            return
        icon = result.image.copy()
        icon.thumbnail(box, Image.Resampling.LANCZOS)
        canvas.paste(icon, ((WIDTH - icon.width) // 2, top))

    def _draw_footer(self, canvas: Canvas) -> None:
        self.layout.print_wrapped(
            canvas.draw, self.fonts.data, MARGIN_H, FOOTER_Y, CONTENT_WIDTH, DISCLAIMER
        )

    def _draw_summary(self, canvas: Canvas, record: ParsedRecord, total: int) -> None:
        person = record.personal
        text = f"DNI: {person.dni} | Nombres: {person.full_name} | Total Registros: {total}"
        canvas.draw.text(
            (MARGIN_H, SUMMARY_Y),
            fit_text(text, self.fonts.heading, CONTENT_WIDTH),
            font=self.fonts.heading,
            fill=WHITE,
        )

    def _paste_optional(self, canvas: Canvas, result: FetchResult, what: str, size, xy) -> bool:
        if not result.ok:
            logger.warning(f"Skipping {what}: {result.error}")
            return False
        canvas.paste(result.image.resize(size), xy)
        return True

    # ==================================================================
    # Personal card (page 1)
    # ==================================================================

    def render_personal_page(
        self,
        record: ParsedRecord,
        packer: Optional[SectionPacker] = None,
    ) -> tuple[Canvas, list[CompanyEntry]]:
        """
        Render the primary card.

        With a packer, company entries are laid out single-column below the
        two data columns until the footer boundary.

        Returns:
            The canvas and the company entries that did not fit
        """
        canvas = self.new_canvas()
        self._draw_header(canvas, box=(300, 200), top=50)

        y_left = self._draw_personal_fields(canvas, record)
        y_right = self._draw_right_column(canvas, record)

        remaining: list[CompanyEntry] = list(record.companies)
        columns_bottom = FOOTER_BOUNDARY
        if packer is not None and remaining:
            columns_bottom = max(y_left, y_right)
            remaining = self._draw_company_section(canvas, packer, remaining, columns_bottom)

        canvas.line([(SEPARATOR_X, CONTENT_TOP - 50), (SEPARATOR_X, columns_bottom)])
        self._draw_footer(canvas)
        return canvas, remaining

    def _draw_personal_fields(self, canvas: Canvas, record: ParsedRecord) -> int:
        person = record.personal
        draw = canvas.draw
        cursor = LayoutCursor(MARGIN_H, CONTENT_TOP, COLUMN_WIDTH)

        sections = [
            ("Datos Personales", [
                ("DNI", person.dni),
                ("Apellidos", person.surnames),
                ("Nombres", person.given_names),
                ("F. Nacimiento", person.birth_date),
                ("Sexo", person.sex),
                ("Estado Civil", person.marital_status),
                ("Estatura", f"{person.height} cm" if person.height else "-"),
                ("Grado Inst.", person.education_level),
                ("Restricción", person.restriction),
            ]),
            ("Info. Adicional y Padres", [
                ("F. Emisión", person.issue_date),
                ("F. Caducidad", person.expiry_date),
                ("Padre", person.father),
                ("Madre", person.mother),
            ]),
            ("Dirección y Ubicación", [
                ("Dirección", person.address),
                ("Distrito", person.district),
                ("Provincia", person.province),
                ("Departamento", person.department),
                ("Cod. Postal", person.postal_code),
            ]),
        ]

        for index, (heading, fields) in enumerate(sections):
            top = cursor.y + (HEADING_SPACING // 2 if index else 0)
            if top + HEADING_SPACING + LINE_HEIGHT > FOOTER_BOUNDARY:
                logger.warning(f"Personal fields truncated before section '{heading}'")
                return cursor.y
            cursor = cursor.moved_to(top)
            draw.text((cursor.x, cursor.y), heading, font=self.fonts.heading, fill=WHITE)
            cursor = cursor.advanced(HEADING_SPACING)
            for label, value in fields:
                y = self._draw_clamped_field(draw, cursor, label, value)
                if y is None:
                    logger.warning(f"Personal fields truncated at '{label}'")
                    return cursor.y
                cursor = cursor.moved_to(y)
        return cursor.y

    def _draw_clamped_field(self, draw, cursor: LayoutCursor, label: str, value: str) -> Optional[int]:
        """
        Draw a field without crossing the footer boundary.

        A value whose wrapped height would cross it is cut to one line with an
        ellipsis. Returns None when not even one line fits.
        """
        data_width = cursor.max_width - self.layout.label_width
        if cursor.y + self.layout.measure_field(value, data_width) <= FOOTER_BOUNDARY:
            return self.layout.print_field(draw, cursor, label, value)
        if cursor.y + LINE_HEIGHT > FOOTER_BOUNDARY:
            return None
        draw.text((cursor.x, cursor.y), f"{label}:", font=self.fonts.bold, fill=WHITE)
        self.layout.print_fitted(
            draw, self.fonts.data, cursor.x + self.layout.label_width, cursor.y, data_width, value or PLACEHOLDER
        )
        return cursor.y + LINE_HEIGHT - FIELD_SPACING_ADJUST

    def _draw_right_column(self, canvas: Canvas, record: ParsedRecord) -> int:
        y_right = CONTENT_TOP

        if record.photo_url:
            photo = self.assets.fetch_image(record.photo_url)
            photo_x = COLUMN_RIGHT_X + (COLUMN_WIDTH - PHOTO_SIZE[0]) // 2
            if self._paste_optional(canvas, photo, "subject photo", PHOTO_SIZE, (photo_x, CONTENT_TOP)):
                y_right += PHOTO_SIZE[1] + HEADING_SPACING

        qr = self.assets.make_qr(self.qr_url)
        qr_x = COLUMN_RIGHT_X + (COLUMN_WIDTH - QR_SIZE) // 2
        qr_y = max(y_right, CONTENT_TOP + QR_MIN_OFFSET)
        if self._paste_optional(canvas, qr, "QR code", (QR_SIZE, QR_SIZE), (qr_x, qr_y)):
            canvas.draw.text((qr_x, qr_y + QR_SIZE + 10), "Escanea el QR", font=self.fonts.heading, fill=WHITE)
            y_right = qr_y + QR_SIZE + 10 + HEADING_SPACING
        return y_right

    def _draw_company_section(
        self,
        canvas: Canvas,
        packer: SectionPacker,
        companies: list[CompanyEntry],
        top: int,
    ) -> list[CompanyEntry]:
        heading_y = top + HEADING_SPACING // 2
        cursor = LayoutCursor(MARGIN_H, heading_y + HEADING_SPACING, CONTENT_WIDTH)
        # No heading when not even the first entry fits
        if packer.projected_end(companies[0], cursor) > packer.boundary:
            return companies

        canvas.line([(MARGIN_H, top), (WIDTH - MARGIN_H, top)], fill=RULE_COLOR)
        canvas.draw.text((MARGIN_H, heading_y), "Empresas Vinculadas", font=self.fonts.heading, fill=WHITE)
        result = packer.pack(canvas.draw, companies, cursor, LayoutMode.SINGLE_COLUMN)
        logger.debug(f"Personal card holds {len(result.placed)} of {len(companies)} company entries")
        return result.remaining

    # ==================================================================
    # Continuation pages (page 2..N)
    # ==================================================================

    def render_continuation_page(
        self,
        record: ParsedRecord,
        companies: Sequence[CompanyEntry],
        page: int,
        packer: SectionPacker,
    ) -> tuple[Canvas, list[CompanyEntry]]:
        """Render one two-column page of overflow company entries."""
        canvas = self.new_canvas()
        self._draw_header(canvas, box=(120, 110), top=40)

        canvas.draw.text(
            (MARGIN_H, TITLE_Y), f"Empresas Vinculadas (Página {page})", font=self.fonts.title, fill=WHITE
        )
        self._draw_summary(canvas, record, len(record.companies))

        cursor = LayoutCursor(MARGIN_H, TABLE_TOP + 10, CONTENT_WIDTH)
        result = packer.pack(canvas.draw, companies, cursor, LayoutMode.DUAL_COLUMN)
        if result.columns and result.columns[1]:
            column_x = MARGIN_H + packer.column_width(cursor) + packer.column_gap // 2
            canvas.line([(column_x, cursor.y), (column_x, result.cursor)], fill=RULE_COLOR)

        self._draw_footer(canvas)
        return canvas, result.remaining

    # ==================================================================
    # Table cards
    # ==================================================================

    def render_table(self, kind: CardKind, record: ParsedRecord) -> Canvas:
        """Render the salary, phone or company table card."""
        if kind not in TABLE_LAYOUTS:
            raise ValueError(f"No table layout for {kind}")
        title, list_attr, columns = TABLE_LAYOUTS[kind]
        entries = getattr(record, list_attr)

        canvas = self.new_canvas()
        self._draw_header(canvas, box=(120, 110), top=40)
        canvas.draw.text((MARGIN_H, TITLE_Y), title, font=self.fonts.title, fill=WHITE)
        self._draw_summary(canvas, record, len(entries))

        draw = canvas.draw
        x = MARGIN_H
        column_x = []
        for header, _, width, _ in columns:
            column_x.append(x)
            draw.text((x, TABLE_TOP), header, font=self.fonts.bold, fill=WHITE)
            x += width

        y = TABLE_TOP + LINE_HEIGHT // 2
        canvas.line([(MARGIN_H, y), (WIDTH - MARGIN_H, y)], fill=RULE_COLOR)
        y += LINE_HEIGHT // 4

        printed = 0
        draw = canvas.draw
        for entry in entries[:MAX_TABLE_ROWS]:
            if y + LINE_HEIGHT > FOOTER_BOUNDARY:
                break
            for col_x, (_, attr, width, limit) in zip(column_x, columns):
                value = getattr(entry, attr) or "-"
                if limit:
                    value = value[:limit]
                self.layout.print_fitted(draw, self.fonts.data, col_x, y, width - 10, value)
            y += LINE_HEIGHT
            printed += 1

        omitted = len(entries) - printed
        if omitted > 0:
            draw.text(
                (MARGIN_H, y),
                f"...y {omitted} resultados más (se muestran los {printed} primeros)",
                font=self.fonts.heading,
                fill=WHITE,
            )
            logger.info(f"{kind.value} table: {printed} rows printed, {omitted} omitted")

        self._draw_footer(canvas)
        return canvas
