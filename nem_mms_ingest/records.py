"""
Typed record variants produced by the section scanner.

One pydantic model per known MMS dataset kind. Every model:

- starts with the four on-wire tag fields (``row_type``, ``category``,
  ``report_type``, ``report_version``), i.e. ``D,TRADING,PRICE,3``;
- declares its remaining fields **in file column order**, each aliased to
  the AEMO column name that appears in the section's ``I`` row;
- carries a ``kind`` literal used as the discriminator of ``RecordVariant``;
- names the schema key it deserializes via the ``SCHEMA_KEY`` class var.

Timestamps are stored as aware UTC datetimes; the local -> UTC conversion
happens in ``Schema.deserialize`` before model validation.

Sample section (TRADINGIS, two blocks in one file)::

    C,NEMP.WORLD,TRADINGIS,AEMO,PUBLIC,2024/03/03,13:30:11,0000000412683134,TRADINGIS,0000000412683133
    I,TRADING,INTERCONNECTORRES,2,SETTLEMENTDATE,RUNNO,INTERCONNECTORID,PERIODID,METEREDMWFLOW,MWFLOW,MWLOSSES,LASTCHANGED
    D,TRADING,INTERCONNECTORRES,2,"2024/03/03 13:35:00",1,N-Q-MNSP1,163,36.2,17,1.36,"2024/03/03 13:30:04"
    I,TRADING,PRICE,3,SETTLEMENTDATE,RUNNO,REGIONID,PERIODID,RRP,EEP,INVALIDFLAG,LASTCHANGED,ROP,...
    D,TRADING,PRICE,3,"2024/03/03 13:35:00",1,SA1,163,-63.45,0,0,"2024/03/03 13:30:04",-63.45,...
    C,"END OF REPORT",15
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class MmsRecord(BaseModel):
    """Fields shared by every MMS data row."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    SCHEMA_KEY: ClassVar[tuple[str, str, str]]

    row_type: str = "D"
    category: str
    report_type: str
    report_version: str


class InterconnectorRecord(MmsRecord):
    """TRADING / INTERCONNECTORRES v2: flow on one interconnector for a trading interval."""

    SCHEMA_KEY: ClassVar[tuple[str, str, str]] = ("TRADING", "INTERCONNECTORRES", "2")

    kind: Literal["interconnector"] = "interconnector"
    settlement_date: datetime = Field(alias="SETTLEMENTDATE")
    run_no: int | None = Field(None, alias="RUNNO")
    interconnector_id: str | None = Field(None, alias="INTERCONNECTORID")
    period_id: int | None = Field(None, alias="PERIODID")
    metered_mw_flow: float | None = Field(None, alias="METEREDMWFLOW")
    mw_flow: float | None = Field(None, alias="MWFLOW")
    mw_losses: float | None = Field(None, alias="MWLOSSES")
    last_changed: datetime | None = Field(None, alias="LASTCHANGED")


class PriceRecord(MmsRecord):
    """TRADING / PRICE v3: regional reference price plus FCAS prices."""

    SCHEMA_KEY: ClassVar[tuple[str, str, str]] = ("TRADING", "PRICE", "3")

    kind: Literal["price"] = "price"
    settlement_date: datetime = Field(alias="SETTLEMENTDATE")
    run_no: int | None = Field(None, alias="RUNNO")
    region_id: str | None = Field(None, alias="REGIONID")
    period_id: int | None = Field(None, alias="PERIODID")
    rrp: float | None = Field(None, alias="RRP")
    eep: float | None = Field(None, alias="EEP")
    invalid_flag: int | None = Field(None, alias="INVALIDFLAG")
    last_changed: datetime = Field(alias="LASTCHANGED")
    rop: float | None = Field(None, alias="ROP")
    raise_6_sec_rrp: float | None = Field(None, alias="RAISE6SECRRP")
    raise_6_sec_rop: float | None = Field(None, alias="RAISE6SECROP")
    raise_60_sec_rrp: float | None = Field(None, alias="RAISE60SECRRP")
    raise_60_sec_rop: float | None = Field(None, alias="RAISE60SECROP")
    raise_5_min_rrp: float | None = Field(None, alias="RAISE5MINRRP")
    raise_5_min_rop: float | None = Field(None, alias="RAISE5MINROP")
    raise_reg_rrp: float | None = Field(None, alias="RAISEREGRRP")
    raise_reg_rop: float | None = Field(None, alias="RAISEREGROP")
    lower_6_sec_rrp: float | None = Field(None, alias="LOWER6SECRRP")
    lower_6_sec_rop: float | None = Field(None, alias="LOWER6SECROP")
    lower_60_sec_rrp: float | None = Field(None, alias="LOWER60SECRRP")
    lower_60_sec_rop: float | None = Field(None, alias="LOWER60SECROP")
    lower_5_min_rrp: float | None = Field(None, alias="LOWER5MINRRP")
    lower_5_min_rop: float | None = Field(None, alias="LOWER5MINROP")
    lower_reg_rrp: float | None = Field(None, alias="LOWERREGRRP")
    lower_reg_rop: float | None = Field(None, alias="LOWERREGROP")
    raise_1_sec_rrp: float | None = Field(None, alias="RAISE1SECRRP")
    raise_1_sec_rop: float | None = Field(None, alias="RAISE1SECROP")
    lower_1_sec_rrp: float | None = Field(None, alias="LOWER1SECRRP")
    lower_1_sec_rop: float | None = Field(None, alias="LOWER1SECROP")
    price_status: str | None = Field(None, alias="PRICE_STATUS")


class RooftopPvActualRecord(MmsRecord):
    """ROOFTOP / ACTUAL v2: estimated rooftop PV output per region."""

    SCHEMA_KEY: ClassVar[tuple[str, str, str]] = ("ROOFTOP", "ACTUAL", "2")

    kind: Literal["rooftop_pv_actual"] = "rooftop_pv_actual"
    interval_datetime: datetime = Field(alias="INTERVAL_DATETIME")
    region_id: str = Field(alias="REGIONID")
    power: float | None = Field(None, alias="POWER")
    qi: float | None = Field(None, alias="QI")
    measurement_type: str = Field(alias="TYPE")
    last_changed: datetime = Field(alias="LASTCHANGED")


class RooftopPvForecastRecord(MmsRecord):
    """ROOFTOP / FORECAST v1: rooftop PV forecast with probability-of-exceedance bands."""

    SCHEMA_KEY: ClassVar[tuple[str, str, str]] = ("ROOFTOP", "FORECAST", "1")

    kind: Literal["rooftop_pv_forecast"] = "rooftop_pv_forecast"
    version_datetime: datetime = Field(alias="VERSION_DATETIME")
    region_id: str = Field(alias="REGIONID")
    interval_datetime: datetime = Field(alias="INTERVAL_DATETIME")
    power_mean: float = Field(alias="POWERMEAN")
    power_poe50: float = Field(alias="POWERPOE50")
    power_poelow: float = Field(alias="POWERPOELOW")
    power_poehigh: float = Field(alias="POWERPOEHIGH")
    last_changed: datetime = Field(alias="LASTCHANGED")


# The closed set of records the scanner can emit. Unknown kinds never
# appear here; they surface as ``UnrecognizedSchema`` on scan results.
RecordVariant = Annotated[
    Union[
        InterconnectorRecord,
        PriceRecord,
        RooftopPvActualRecord,
        RooftopPvForecastRecord,
    ],
    Field(discriminator="kind"),
]

KNOWN_RECORD_MODELS: tuple[type[MmsRecord], ...] = (
    InterconnectorRecord,
    PriceRecord,
    RooftopPvActualRecord,
    RooftopPvForecastRecord,
)
