"""
Unit tests for schema derivation, deserialization and the registry
(nem_mms_ingest.schema_registry).
"""

from datetime import datetime, timezone
from typing import ClassVar, Literal

import pytest
from pydantic import Field, ValidationError

from nem_mms_ingest.exceptions import (
    AmbiguousLocalTimeError,
    FieldTypeError,
    MalformedTimestampError,
    SchemaRegistrationError,
    UnrecognizedSchemaError,
)
from nem_mms_ingest.records import InterconnectorRecord, MmsRecord, PriceRecord, RooftopPvActualRecord
from nem_mms_ingest.rows import split_fields
from nem_mms_ingest.schema_registry import (
    FieldType,
    Schema,
    SchemaKey,
    SchemaRegistry,
    build_registry,
    default_registry,
)
from tests.conftest import INTERCONNECTOR_HEADER, INTERCONNECTOR_ROW, PRICE_HEADER, PRICE_ROW


class DispatchCaseRecord(MmsRecord):
    """Small custom kind used to exercise registry extension."""

    SCHEMA_KEY: ClassVar[tuple[str, str, str]] = ("DISPATCH", "CASESOLUTION", "2")

    kind: Literal["dispatch_case"] = "dispatch_case"
    settlement_date: datetime = Field(alias="SETTLEMENTDATE")
    intervention: int | None = Field(None, alias="INTERVENTION")


# ---------------------------------------------------------------------------
# SchemaKey
# ---------------------------------------------------------------------------

class TestSchemaKey:
    """Tests for SchemaKey construction and rendering."""

    def test_from_fields(self):
        key = SchemaKey.from_fields(split_fields(INTERCONNECTOR_HEADER))
        assert key == ("TRADING", "INTERCONNECTORRES", "2")

    def test_identifier(self):
        assert SchemaKey("TRADING", "PRICE", "3").identifier == "TRADING,PRICE,3"
        assert str(SchemaKey("TRADING", "PRICE", "3")) == "TRADING,PRICE,3"

    def test_short_row_padded(self):
        assert SchemaKey.from_fields(("D", "TRADING")) == ("TRADING", "", "")


# ---------------------------------------------------------------------------
# Schema derivation
# ---------------------------------------------------------------------------

class TestSchemaFromModel:
    """Tests for Schema.from_model()."""

    def test_interconnector_columns_match_header(self):
        schema = Schema.from_model(InterconnectorRecord)
        assert schema.column_names == list(split_fields(INTERCONNECTOR_HEADER)[4:])

    def test_price_columns_match_header(self):
        schema = Schema.from_model(PriceRecord)
        assert schema.column_names == list(split_fields(PRICE_HEADER)[4:])
        assert schema.width == 34

    def test_field_types(self):
        schema = Schema.from_model(InterconnectorRecord)
        by_name = {f.name: f for f in schema.fields}
        assert by_name["settlement_date"].type is FieldType.TIMESTAMP
        assert not by_name["settlement_date"].optional
        assert by_name["run_no"].type is FieldType.INT
        assert by_name["run_no"].optional
        assert by_name["mw_flow"].type is FieldType.FLOAT
        assert by_name["interconnector_id"].type is FieldType.STRING

    def test_kind(self):
        assert Schema.from_model(RooftopPvActualRecord).kind == "rooftop_pv_actual"


# ---------------------------------------------------------------------------
# Schema.deserialize
# ---------------------------------------------------------------------------

class TestDeserialize:
    """Tests for Schema.deserialize()."""

    def setup_method(self):
        self.schema = Schema.from_model(InterconnectorRecord)
        self.fields = split_fields(INTERCONNECTOR_ROW)

    def test_interconnector(self):
        record = self.schema.deserialize(self.fields)
        assert isinstance(record, InterconnectorRecord)
        assert record.interconnector_id == "N-Q-MNSP1"
        assert record.metered_mw_flow == 36.2
        assert record.period_id == 163
        assert record.settlement_date == datetime(2024, 3, 3, 2, 35, tzinfo=timezone.utc)
        assert record.last_changed == datetime(2024, 3, 3, 2, 30, 4, tzinfo=timezone.utc)

    def test_tag_fields_kept(self):
        record = self.schema.deserialize(self.fields)
        assert (record.row_type, record.category, record.report_type, record.report_version) == (
            "D", "TRADING", "INTERCONNECTORRES", "2",
        )

    def test_price_row(self):
        record = Schema.from_model(PriceRecord).deserialize(split_fields(PRICE_ROW))
        assert record.region_id == "SA1"
        assert record.rrp == -63.45
        assert record.raise_reg_rrp == 0.91
        assert record.lower_reg_rop == 3.76
        assert record.price_status == "FIRM"

    def test_blank_optional_is_none(self):
        fields = list(self.fields)
        fields[9] = ""          # MWFLOW
        record = self.schema.deserialize(fields)
        assert record.mw_flow is None

    def test_blank_required_rejected(self):
        fields = list(self.fields)
        fields[4] = ""          # SETTLEMENTDATE
        with pytest.raises(FieldTypeError, match="SETTLEMENTDATE") as exc_info:
            self.schema.deserialize(fields)
        assert exc_info.value.field == "settlement_date"

    def test_bad_float(self):
        fields = list(self.fields)
        fields[8] = "not-a-number"      # METEREDMWFLOW
        with pytest.raises(FieldTypeError) as exc_info:
            self.schema.deserialize(fields)
        assert exc_info.value.field == "metered_mw_flow"

    def test_bad_int(self):
        fields = list(self.fields)
        fields[5] = "x"         # RUNNO
        with pytest.raises(FieldTypeError) as exc_info:
            self.schema.deserialize(fields)
        assert exc_info.value.field == "run_no"

    def test_too_few_fields(self):
        with pytest.raises(FieldTypeError, match="expected 12 fields, got 11"):
            self.schema.deserialize(self.fields[:-1])

    def test_too_many_fields(self):
        with pytest.raises(FieldTypeError, match="expected 12 fields"):
            self.schema.deserialize(self.fields + ("extra",))

    def test_malformed_timestamp(self):
        fields = list(self.fields)
        fields[4] = "03/03/2024 13:35"
        with pytest.raises(MalformedTimestampError):
            self.schema.deserialize(fields)

    def test_dst_gap(self):
        fields = list(self.fields)
        fields[4] = "2023/10/01 02:30:00"
        with pytest.raises(AmbiguousLocalTimeError):
            self.schema.deserialize(fields)

    def test_record_is_frozen(self):
        record = self.schema.deserialize(self.fields)
        with pytest.raises(ValidationError):
            record.mw_flow = 0.0


# ---------------------------------------------------------------------------
# SchemaRegistry
# ---------------------------------------------------------------------------

class TestSchemaRegistry:
    """Tests for SchemaRegistry registration and lookup."""

    def test_default_registry_kinds(self):
        registry = default_registry()
        assert len(registry) == 4
        assert ("TRADING", "INTERCONNECTORRES", "2") in registry
        assert ("TRADING", "PRICE", "3") in registry
        assert ("ROOFTOP", "ACTUAL", "2") in registry
        assert ("ROOFTOP", "FORECAST", "1") in registry

    def test_default_registry_is_shared(self):
        assert default_registry() is default_registry()

    def test_lookup_exact(self):
        schema = default_registry().lookup(("TRADING", "PRICE", "3"))
        assert schema is not None
        assert schema.model is PriceRecord

    def test_lookup_is_case_sensitive(self):
        assert default_registry().lookup(("trading", "price", "3")) is None

    def test_lookup_other_version_misses(self):
        assert default_registry().lookup(("TRADING", "PRICE", "2")) is None

    def test_duplicate_rejected(self):
        registry = SchemaRegistry()
        registry.register_model(PriceRecord)
        with pytest.raises(SchemaRegistrationError, match="already registered"):
            registry.register_model(PriceRecord)

    def test_require_unknown(self):
        with pytest.raises(UnrecognizedSchemaError, match="DISPATCH,CASESOLUTION,2"):
            default_registry().require(("DISPATCH", "CASESOLUTION", "2"))

    def test_extension(self):
        """A new kind needs a model and a registration, nothing else."""
        registry = build_registry([PriceRecord, DispatchCaseRecord])
        schema = registry.require(("DISPATCH", "CASESOLUTION", "2"))
        record = schema.deserialize(
            ("D", "DISPATCH", "CASESOLUTION", "2", "2024/03/03 13:35:00", "0")
        )
        assert record.kind == "dispatch_case"
        assert record.intervention == 0

    def test_default_untouched_by_extension(self):
        build_registry([DispatchCaseRecord])
        assert ("DISPATCH", "CASESOLUTION", "2") not in default_registry()

    def test_keys_in_registration_order(self):
        registry = build_registry([RooftopPvActualRecord, PriceRecord])
        assert registry.keys() == [("ROOFTOP", "ACTUAL", "2"), ("TRADING", "PRICE", "3")]
