import logging

import pytest

from kingdom import Kingdom, KingdomConfig
from sim.safe_parse import clamp, to_bool, to_float, to_int


def test_safe_parse_helpers():
    assert to_int("7") == 7
    assert to_int(" -3 ") == -3
    assert to_int(4.9) == 4
    assert to_int("bad", default=3) == 3
    assert to_int(True, default=5) == 5
    assert to_float("1.5") == 1.5
    assert to_float("nan", default=2.5) == 2.5
    assert to_float(float("inf"), default=1.0) == 1.0
    assert to_bool("TRUE") is True
    assert to_bool(0) is False
    assert to_bool("maybe", default=True) is True
    assert clamp(150) == 100
    assert clamp(-1) == 0
    assert clamp(0.5, 0.3, 1.0) == 0.5


def test_kingdom_snapshot_guard(caplog):
    data = Kingdom(KingdomConfig(name="Testland", ruler_name="Ada")).serialize()
    data["resources"]["gold"] = "lots"
    data["population"]["peasants"] = "12"
    data["stats"]["stability"] = None
    data["is_at_war"] = "yes"

    with caplog.at_level(logging.WARNING, logger="sim.safe_parse"):
        k = Kingdom.deserialize(data)
    assert k.resources.gold == 0.0
    assert k.population.peasants == 12
    assert k.stats.stability == 70.0
    assert k.is_at_war is False
    assert "lots" in caplog.text


def test_kingdom_snapshot_rejects_bad_sections():
    data = Kingdom(KingdomConfig(name="Testland", ruler_name="Ada")).serialize()
    data["military"] = ["not", "a", "mapping"]
    with pytest.raises(ValueError):
        Kingdom.deserialize(data)

    data = Kingdom(KingdomConfig(name="Testland", ruler_name="Ada")).serialize()
    data["climate"] = "volcanic"
    with pytest.raises(ValueError):
        Kingdom.deserialize(data)
