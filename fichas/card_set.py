"""Card set orchestration: decides which cards a record produces, in order."""

from dataclasses import dataclass

from .card_renderer import CardKind, CardRenderer, company_block_fields
from .record_parser import ParsedRecord
from .section_packer import SectionPacker
from .utils import get_logger

logger = get_logger(__name__)

TABLE_KINDS = (
    (CardKind.SALARY, "salaries"),
    (CardKind.PHONE, "phones"),
    (CardKind.COMPANY, "companies"),
)


@dataclass(frozen=True)
class CardImage:
    """A finished card: PNG bytes plus the suffix used to name it downstream."""

    suffix: str
    png: bytes
    page: int
    kind: CardKind

    @property
    def is_continuation(self) -> bool:
        return self.suffix.startswith("PAGE_")


def continuation_suffix(page: int) -> str:
    return f"PAGE_{page}"


class CardSetBuilder:
    """Renders every card for one record, sequentially and in a fixed order."""

    def __init__(self, renderer: CardRenderer):
        self.renderer = renderer
        self.packer = SectionPacker(renderer.layout, company_block_fields)

    def build(self, dni: str, record: ParsedRecord) -> list[CardImage]:
        """
        Render the card set for ``record``.

        Order: personal card, company continuation pages, then the salary,
        phone and company tables for whichever lists are non-empty.

        The EMPRESAS table lists every company entry, including those already
        drawn on the personal card and the continuation pages. A record whose
        companies overflow therefore yields one card more than its personal
        and continuation pages, since the table is rendered whenever the
        company list is non-empty.

        Args:
            dni: The queried DNI (used for logging)
            record: Parsed upstream record

        Returns:
            Finished cards in render order
        """
        cards: list[CardImage] = []

        logger.info(f"Rendering personal card for DNI {dni}")
        canvas, remaining = self.renderer.render_personal_page(record, self.packer)
        cards.append(CardImage(CardKind.PERSONAL.value, canvas.finalize(), 1, CardKind.PERSONAL))

        page = 1
        while remaining:
            page += 1
            logger.info(f"Rendering continuation page {page} ({len(remaining)} company entries left)")
            canvas, left = self.renderer.render_continuation_page(record, remaining, page, self.packer)
            if len(left) == len(remaining):
                raise RuntimeError(f"Continuation page {page} could not place any entry")
            remaining = left
            cards.append(CardImage(continuation_suffix(page), canvas.finalize(), page, CardKind.COMPANY))

        for kind, list_attr in TABLE_KINDS:
            if not getattr(record, list_attr):
                continue
            logger.info(f"Rendering {kind.value} card")
            canvas = self.renderer.render_table(kind, record)
            page += 1
            cards.append(CardImage(kind.value, canvas.finalize(), page, kind))

        logger.info(f"Card set for DNI {dni}: {len(cards)} cards")
        return cards
