from __future__ import annotations

import pytest

from eere_engine.regions import REGION_MAP, get_region, normalize_region_id


def test_fourteen_regions_registered():
    assert len(REGION_MAP) == 14
    assert list(REGION_MAP)[:3] == ["CA", "NCSC", "CENT"]


@pytest.mark.parametrize(
    "alias, expected",
    [
        ("NE", "NE"),
        ("ne", "NE"),
        ("New England", "NE"),
        ("new_england", "NE"),
        ("Mid-Atlantic", "MIDA"),
        ("ERCOT", "TE"),
        ("Rocky Mountains", "RM"),
        ("carolinas", "NCSC"),
    ],
)
def test_aliases_normalize(alias, expected):
    assert normalize_region_id(alias) == expected


@pytest.mark.parametrize("value", ["", None, "Atlantis"])
def test_unknown_regions_raise(value):
    with pytest.raises(ValueError):
        normalize_region_id(value)


def test_line_loss_by_interconnection():
    assert get_region("TE").line_loss == pytest.approx(0.0495352907853342)
    assert get_region("NE").line_loss == pytest.approx(0.0750240831578937)
    assert get_region("CA").line_loss == pytest.approx(0.0838715063900653)


def test_offshore_wind_eligibility():
    assert get_region("NE").offshore_wind
    assert not get_region("Tennessee").offshore_wind
