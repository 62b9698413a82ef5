"""Tests for the simulated record generator."""

import pytest

from outreach_dashboard.config import FIELD_MAPS, SHAPES
from outreach_dashboard.errors import ConfigurationError
from outreach_dashboard.simulator import generate_linkedin_connections, generate_records


@pytest.mark.parametrize("shape", SHAPES)
def test_same_seed_same_records(shape):
    assert generate_records(shape, seed=7) == generate_records(shape, seed=7)
    assert generate_records(shape, seed=7) != generate_records(shape, seed=8)


@pytest.mark.parametrize("shape", SHAPES)
def test_rows_use_live_column_names(shape):
    records = generate_records(shape, n_records=25)

    assert len(records) == 25
    for column in FIELD_MAPS[shape].values():
        assert column in records[0]


def test_connections_include_hand_typed_values():
    records = generate_linkedin_connections(n_records=400)

    assert any(r["timeToAccept"] == "pending" for r in records)
    assert any(r["messageError"] for r in records)


def test_unknown_shape():
    with pytest.raises(ConfigurationError):
        generate_records("sms_campaign")
