"""Parser for the plain-text record returned by the upstream lookup API.

The upstream ``message`` field is a sequence of blocks separated by ``---``.
The first block holds the person's demographic data as ``LABEL : value``
lines; every later block is a list of repeated entries (salaries, phone lines
or company positions), each entry opening with a ``DNI : ...`` line.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Optional, Union

from .errors import MalformedUpstreamPayload
from .utils import get_logger

logger = get_logger(__name__)

BLOCK_DELIMITER = "---"
ENTRY_BOUNDARY = "DNI :"

# Bracketed index markers such as "[1]", "[DNI]" or "[2/5]"
_BRACKET_RE = re.compile(r"\[[^\]]*\]")
_PAGE_MARKER_RE = re.compile(r"\[\d+/\d+\]")
_DIGITS_RE = re.compile(r"\d+")
# Emoji, arrows, dingbats and other pictographs, plus variation selectors / ZWJ
PICTOGRAPH_RANGES = (
    (0x1F000, 0x1FAFF),
    (0x2190, 0x21FF),
    (0x2300, 0x23FF),
    (0x2600, 0x27BF),
    (0x2B00, 0x2BFF),
    (0xFE0E, 0xFE0F),
    (0x200D, 0x200D),
)
_PICTOGRAPH_RE = re.compile(
    "[" + "".join(f"{chr(lo)}-{chr(hi)}" for lo, hi in PICTOGRAPH_RANGES) + "]"
)
_SPACES_RE = re.compile(r"\s+")

# Normalized upstream label -> PersonalRecord attribute
PERSONAL_LABELS = {
    "DNI": "dni",
    "APELLIDOS": "surnames",
    "NOMBRES": "given_names",
    "GENERO": "sex",
    "FECHA NACIMIENTO": "birth_date",
    "DEPARTAMENTO": "department",
    "PROVINCIA": "province",
    "DISTRITO": "district",
    "GRADO INSTRUCCION": "education_level",
    "ESTADO CIVIL": "marital_status",
    "ESTATURA": "height",
    "FECHA EMISION": "issue_date",
    "FECHA CADUCIDAD": "expiry_date",
    "FECHA FALLECIMIENTO": "death_date",
    "PADRE": "father",
    "MADRE": "mother",
    "RESTRICCION": "restriction",
    "DIRECCION": "address",
    "CODIGO POSTAL": "postal_code",
}

SALARY_MARKER = "SUELDO"
PHONE_MARKER = "TELEFONO"
COMPANY_MARKER = "CARGO"


@dataclass(frozen=True)
class PersonalRecord:
    """Demographic and document data for one person."""

    dni: str = ""
    surnames: str = ""
    given_names: str = ""
    birth_date: str = ""
    sex: str = ""
    marital_status: str = ""
    height: str = ""
    education_level: str = ""
    issue_date: str = ""
    expiry_date: str = ""
    death_date: str = ""
    restriction: str = ""
    father: str = ""
    mother: str = ""
    address: str = ""
    district: str = ""
    province: str = ""
    department: str = ""
    postal_code: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.given_names} {self.surnames}".strip()


@dataclass(frozen=True)
class SalaryEntry:
    dni: str = ""
    tax_id: str = ""
    employer: str = ""
    status: str = ""
    amount: str = ""
    period: str = ""

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> "SalaryEntry":
        return cls(
            dni=fields.get("DNI", ""),
            tax_id=fields.get("RUC", ""),
            employer=fields.get("EMPRESA", ""),
            status=fields.get("SITUACION", ""),
            amount=fields.get("SUELDO", ""),
            period=fields.get("PERIODO", ""),
        )


@dataclass(frozen=True)
class PhoneEntry:
    dni: str = ""
    phone: str = ""
    plan: str = ""
    source: str = ""
    period: str = ""

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> "PhoneEntry":
        return cls(
            dni=fields.get("DNI", ""),
            phone=fields.get("TELEFONO", ""),
            plan=fields.get("PLAN", ""),
            source=fields.get("FUENTE", ""),
            period=fields.get("PERIODO", ""),
        )


@dataclass(frozen=True)
class CompanyEntry:
    dni: str = ""
    tax_id: str = ""
    business_name: str = ""
    position: str = ""
    since: str = ""

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> "CompanyEntry":
        return cls(
            dni=fields.get("DNI", ""),
            tax_id=fields.get("RUC", ""),
            business_name=fields.get("RAZON_SOCIAL", ""),
            position=fields.get("CARGO", ""),
            since=fields.get("DESDE", ""),
        )


RepeatedEntry = Union[SalaryEntry, PhoneEntry, CompanyEntry]


@dataclass(frozen=True)
class ParsedRecord:
    """A person's record plus the repeated-entry lists, in source order."""

    personal: PersonalRecord
    salaries: tuple[SalaryEntry, ...] = ()
    phones: tuple[PhoneEntry, ...] = ()
    companies: tuple[CompanyEntry, ...] = ()
    photo_url: Optional[str] = None


def _fold(text: str) -> str:
    """Uppercase and strip diacritics ("Dirección" -> "DIRECCION")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).upper()


def _clean_value(value: str) -> str:
    value = _PICTOGRAPH_RE.sub("", value)
    value = _PAGE_MARKER_RE.sub("", value)
    return value.strip()


def normalize_label(label: str) -> str:
    """Normalize a personal-data label for lookup in ``PERSONAL_LABELS``."""
    label = _BRACKET_RE.sub("", label)
    label = _DIGITS_RE.sub("", label)
    label = _PICTOGRAPH_RE.sub("", label)
    return _SPACES_RE.sub(" ", _fold(label)).strip()


def entry_field_key(label: str) -> str:
    """Field key for a repeated-entry label ("RAZON SOCIAL" -> "RAZON_SOCIAL")."""
    label = _PICTOGRAPH_RE.sub("", label)
    return _SPACES_RE.sub("_", _fold(label).strip())


def _split_line(line: str) -> Optional[tuple[str, str]]:
    label, sep, value = line.partition(":")
    if not sep:
        return None
    return label.strip(), value.strip()


def _block_lines(block: str) -> list[str]:
    return [line.strip() for line in block.splitlines() if line.strip()]


def _parse_personal_block(block: str) -> PersonalRecord:
    values: dict[str, str] = {}
    seen_pair = False
    for line in _block_lines(block):
        pair = _split_line(line)
        if pair is None:
            continue
        seen_pair = True
        attr = PERSONAL_LABELS.get(normalize_label(pair[0]))
        if attr:
            values[attr] = _clean_value(pair[1])

    if not seen_pair:
        raise MalformedUpstreamPayload("El bloque de datos personales no contiene campos.")
    return PersonalRecord(**values)


def _classify_block(lines: list[str]) -> Optional[type]:
    folded = [_fold(line) for line in lines]
    if any(SALARY_MARKER in line for line in folded):
        return SalaryEntry
    if any(PHONE_MARKER in line for line in folded):
        return PhoneEntry
    if any(COMPANY_MARKER in line for line in folded):
        return CompanyEntry
    return None


def _parse_entry_block(block: str) -> tuple[Optional[type], list[dict[str, str]]]:
    """Split a repeated-entry block into raw field dicts."""
    lines = _block_lines(block)
    entry_type = _classify_block(lines)

    entries: list[dict[str, str]] = []
    current: dict[str, str] = {}
    for line in lines:
        if line.startswith(ENTRY_BOUNDARY):
            if current.get("DNI"):
                entries.append(current)
            current = {}

        pair = _split_line(line)
        if pair is not None:
            current[entry_field_key(pair[0])] = _clean_value(pair[1])

    if current.get("DNI"):
        entries.append(current)

    return entry_type, entries


def parse_record_text(text: str, photo_url: Optional[str] = None) -> ParsedRecord:
    """
    Parse the upstream record text into a ParsedRecord.

    Args:
        text: The upstream ``message`` text
        photo_url: Optional subject photo URL supplied alongside the text

    Returns:
        ParsedRecord with the personal data and the three entry lists

    Raises:
        MalformedUpstreamPayload: If no personal-data block can be parsed
    """
    if not text or not text.strip():
        raise MalformedUpstreamPayload("La respuesta del servicio de consulta está vacía.")

    blocks = [b.strip() for b in text.split(BLOCK_DELIMITER)]
    blocks = [b for b in blocks if b]
    if not blocks:
        raise MalformedUpstreamPayload("La respuesta del servicio de consulta está vacía.")

    personal = _parse_personal_block(blocks[0])

    lists: dict[type, list] = {SalaryEntry: [], PhoneEntry: [], CompanyEntry: []}
    for block in blocks[1:]:
        entry_type, raw_entries = _parse_entry_block(block)
        if entry_type is None:
            if raw_entries:
                logger.debug(f"Dropping {len(raw_entries)} entries from an unclassified block")
            continue
        lists[entry_type].extend(entry_type.from_fields(raw) for raw in raw_entries)

    return ParsedRecord(
        personal=personal,
        salaries=tuple(lists[SalaryEntry]),
        phones=tuple(lists[PhoneEntry]),
        companies=tuple(lists[CompanyEntry]),
        photo_url=photo_url or None,
    )


def parse_upstream_payload(payload: dict) -> ParsedRecord:
    """Parse a full upstream JSON response (``message`` text plus ``urls``)."""
    message = payload.get("message")
    if not isinstance(message, str):
        raise MalformedUpstreamPayload("La respuesta del servicio de consulta no tiene mensaje.")
    urls = payload.get("urls") or {}
    photo_url = urls.get("IMAGE") if isinstance(urls, dict) else None
    return parse_record_text(message, photo_url=photo_url)
