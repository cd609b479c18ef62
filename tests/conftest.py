"""
Shared test fixtures and sample data for nem-mms-ingest tests.

Sample MMS CSV content is defined here as module-level constants, copied
from real NEMWEB TRADINGIS and ROOFTOP_PV exports (shortened). If a
report version changes, update the constants here.
"""

from __future__ import annotations

import io
import zipfile

import pytest

# ---------------------------------------------------------------------------
# Sample rows
# ---------------------------------------------------------------------------

TRADINGIS_BANNER = (
    "C,NEMP.WORLD,TRADINGIS,AEMO,PUBLIC,2024/03/03,13:30:11,"
    "0000000412683134,TRADINGIS,0000000412683133"
)

INTERCONNECTOR_HEADER = (
    "I,TRADING,INTERCONNECTORRES,2,SETTLEMENTDATE,RUNNO,INTERCONNECTORID,"
    "PERIODID,METEREDMWFLOW,MWFLOW,MWLOSSES,LASTCHANGED"
)
INTERCONNECTOR_ROW = (
    'D,TRADING,INTERCONNECTORRES,2,"2024/03/03 13:35:00",1,N-Q-MNSP1,163,'
    '36.2,17,1.36,"2024/03/03 13:30:04"'
)
INTERCONNECTOR_ROW_2 = (
    'D,TRADING,INTERCONNECTORRES,2,"2024/03/03 13:35:00",1,NSW1-QLD1,163,'
    '-512.11,-498.6,14.2,"2024/03/03 13:30:04"'
)

PRICE_HEADER = (
    "I,TRADING,PRICE,3,SETTLEMENTDATE,RUNNO,REGIONID,PERIODID,RRP,EEP,"
    "INVALIDFLAG,LASTCHANGED,ROP,RAISE6SECRRP,RAISE6SECROP,RAISE60SECRRP,"
    "RAISE60SECROP,RAISE5MINRRP,RAISE5MINROP,RAISEREGRRP,RAISEREGROP,"
    "LOWER6SECRRP,LOWER6SECROP,LOWER60SECRRP,LOWER60SECROP,LOWER5MINRRP,"
    "LOWER5MINROP,LOWERREGRRP,LOWERREGROP,RAISE1SECRRP,RAISE1SECROP,"
    "LOWER1SECRRP,LOWER1SECROP,PRICE_STATUS"
)
PRICE_ROW = (
    'D,TRADING,PRICE,3,"2024/03/03 13:35:00",1,SA1,163,-63.45,0,0,'
    '"2024/03/03 13:30:04",-63.45,0,0,0,0,0,0,0.91,0.91,1.84,1.84,4.78,4.78,'
    "0.39,0.39,3.76,3.76,0,0,0,0,FIRM"
)

TRADINGIS_TRAILER = 'C,"END OF REPORT",15'

ROOFTOP_ACTUAL_HEADER = (
    "I,ROOFTOP,ACTUAL,2,INTERVAL_DATETIME,REGIONID,POWER,QI,TYPE,LASTCHANGED"
)
ROOFTOP_ACTUAL_ROW = (
    'D,ROOFTOP,ACTUAL,2,"2024/03/03 19:30:00",SA1,6.617,1,MEASUREMENT,'
    '"2024/03/03 19:49:14"'
)
ROOFTOP_ACTUAL_ROW_2 = (
    'D,ROOFTOP,ACTUAL,2,"2024/03/03 19:30:00",VIC1,41.002,1,MEASUREMENT,'
    '"2024/03/03 19:49:14"'
)
ROOFTOP_TRAILER = 'C,"END OF REPORT",13'

ROOFTOP_FORECAST_HEADER = (
    "I,ROOFTOP,FORECAST,1,VERSION_DATETIME,REGIONID,INTERVAL_DATETIME,"
    "POWERMEAN,POWERPOE50,POWERPOELOW,POWERPOEHIGH,LASTCHANGED"
)
ROOFTOP_FORECAST_ROW = (
    'D,ROOFTOP,FORECAST,1,"2024/03/03 19:30:00",QLD1,"2024/03/03 20:00:00",'
    '12.5,12.1,8.25,17.75,"2024/03/03 19:31:02"'
)

UNKNOWN_HEADER = "I,DISPATCH,UNKNOWN,9,SETTLEMENTDATE,VALUE"
UNKNOWN_ROW = 'D,DISPATCH,UNKNOWN,9,"2024/03/03 13:35:00",42'


# ---------------------------------------------------------------------------
# Sample files
# ---------------------------------------------------------------------------

TRADINGIS_LINES = [
    TRADINGIS_BANNER,
    INTERCONNECTOR_HEADER,
    INTERCONNECTOR_ROW,
    INTERCONNECTOR_ROW_2,
    PRICE_HEADER,
    PRICE_ROW,
    TRADINGIS_TRAILER,
]
TRADINGIS_CSV = "\r\n".join(TRADINGIS_LINES) + "\r\n"

ROOFTOP_ACTUAL_CSV = "\r\n".join(
    [
        "C,NEMP.WORLD,ROOFTOP_PV_ACTUAL_MEASUREMENT,AEMO,PUBLIC,2024/03/03,19:49:14,"
        "0000000412717346,ROOFTOP_PV_ACTUAL_MEASUREMENT,0000000412717345",
        ROOFTOP_ACTUAL_HEADER,
        ROOFTOP_ACTUAL_ROW,
        ROOFTOP_ACTUAL_ROW_2,
        ROOFTOP_TRAILER,
    ]
) + "\r\n"


def make_zip(entries: list[tuple[str, bytes]]) -> bytes:
    """Build an in-memory zip archive from ``(name, bytes)`` pairs."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries:
            zf.writestr(name, data)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tradingis_zip(tmp_path):
    """A TRADINGIS report zip on disk, named the way NEMWEB names it."""
    path = tmp_path / "PUBLIC_TRADINGIS_202403031335_0000000412683134.zip"
    path.write_bytes(make_zip([("PUBLIC_TRADINGIS_202403031335_0000000412683134.CSV", TRADINGIS_CSV.encode())]))
    return path


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------
def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (parses whole in-memory archives)",
    )
