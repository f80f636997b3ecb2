"""
pytest configuration and shared fixtures
"""

import random
from pathlib import Path

import pytest

from fichas.card_renderer import CardRenderer
from fichas.config import Settings
from fichas.record_parser import ParsedRecord, PersonalRecord
from fichas.text_layout import FontSet, TextLayout, load_fonts

from helpers import StubAssets, fixed_fonts, make_companies


# ============================================================================
# Upstream payloads
# ============================================================================

SAMPLE_MESSAGE = """[#BOT] RENIEC ONLINE

DNI : 45678912
APELLIDOS : QUISPE MAMANI
NOMBRES : ROSA ELENA
GÉNERO : FEMENINO
FECHA NACIMIENTO : 01/02/1985
ESTADO CIVIL : SOLTERO
ESTATURA : 158
GRADO INSTRUCCIÓN : SUPERIOR
FECHA EMISIÓN : 10/03/2018
FECHA CADUCIDAD : 10/03/2026
PADRE : JUAN
MADRE : MARIA
DIRECCIÓN : AV. LOS INCAS 123
DISTRITO : WANCHAQ
PROVINCIA : CUSCO
DEPARTAMENTO : CUSCO
---
DNI : 45678912
RUC : 20100000001
EMPRESA : ANDES SAC
SITUACION : ACTIVO
SUELDO : 2500
PERIODO : 2024-01
DNI : 45678912
RUC : 20100000002
EMPRESA : CUSCO TOURS EIRL
SITUACION : ACTIVO
SUELDO : 1800
PERIODO : 2023-12
---
DNI : 45678912
TELEFONO : 987654321
PLAN : PREPAGO
FUENTE : CLARO
PERIODO : 2023-12
---
DNI : 45678912
RAZON SOCIAL : INVERSIONES ANDINAS SAC
RUC : 20500000002
CARGO : GERENTE GENERAL
DESDE : 2019-05-01
"""

PERSONAL_ONLY_MESSAGE = """DNI : 11112222
APELLIDOS : TORRES
NOMBRES : LUIS
"""


@pytest.fixture
def sample_payload() -> dict:
    """Upstream response with personal data and all three entry lists"""
    return {
        "status": "ok",
        "message": SAMPLE_MESSAGE,
        "urls": {"IMAGE": "https://img.example.com/45678912.jpg"},
    }


@pytest.fixture
def personal_only_payload() -> dict:
    return {"status": "ok", "message": PERSONAL_ONLY_MESSAGE}


# ============================================================================
# Records
# ============================================================================

@pytest.fixture
def personal_record() -> PersonalRecord:
    return PersonalRecord(
        dni="45678912",
        surnames="QUISPE MAMANI",
        given_names="ROSA ELENA",
        birth_date="01/02/1985",
        sex="FEMENINO",
        address="AV. LOS INCAS 123",
    )


@pytest.fixture
def record_factory(personal_record: PersonalRecord):
    """Build a ParsedRecord with ``companies`` generated company entries"""

    def factory(companies: int = 0, **lists) -> ParsedRecord:
        return ParsedRecord(personal=personal_record, companies=make_companies(companies), **lists)

    return factory


# ============================================================================
# Layout and rendering
# ============================================================================

@pytest.fixture
def fixed_font_set() -> FontSet:
    """Fonts whose glyphs are all 10px wide"""
    return fixed_fonts(10)


@pytest.fixture
def layout(fixed_font_set: FontSet) -> TextLayout:
    return TextLayout(fixed_font_set)


@pytest.fixture(scope="session")
def pillow_fonts() -> FontSet:
    """Pillow's bundled default face (no font files on disk)"""
    return load_fonts(Path("/nonexistent-fonts-dir"))


@pytest.fixture
def stub_assets() -> StubAssets:
    return StubAssets()


@pytest.fixture
def renderer(pillow_fonts: FontSet, stub_assets: StubAssets) -> CardRenderer:
    return CardRenderer(
        fonts=pillow_fonts,
        assets=stub_assets,
        icon_url="https://icons.example.com/app.png",
        qr_url="https://apps.example.com/consulta",
        rng=random.Random(0),
    )


# ============================================================================
# Configuration
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        public_base_url="https://fichas.example.com",
        github_token="ghp_test",
        github_repo="acme/fichas",
        bot_name="Consulta pe",
        bot_chat_id=7658983973,
    )
