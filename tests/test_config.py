import logging

from part_curation.config import (
    DEFAULT_FALLBACK_IMAGE,
    DEFAULT_MAX_CONSECUTIVE,
    DEFAULT_PROBE_TIMEOUT,
    CurationConfig,
    FieldPriorityTable,
)


def test_defaults():
    config = CurationConfig()
    assert config.max_consecutive == 2
    assert config.switch_probability == 0.7
    assert config.probe_timeout == 10.0
    assert config.max_candidates == 5
    assert (config.min_width, config.min_height) == (50, 50)
    assert config.field_table.single_fields[0] == "image"
    assert config.field_table.array_fields == ("images", "gallery", "pictures", "photos")


def test_field_priorities():
    table = FieldPriorityTable()
    assert table.single_priority(0) == 1
    assert table.single_priority(7) == 8
    assert table.array_priority(1, 4) == 34


def test_from_env_overrides():
    config = CurationConfig.from_env(
        {
            "PART_CURATION_MAX_CONSECUTIVE": "3",
            "PART_CURATION_PROBE_TIMEOUT": "2.5",
            "PART_CURATION_MAX_CANDIDATES": "8",
            "PART_CURATION_BASE_URL": "https://shop.test/",
            "PART_CURATION_FALLBACK_IMAGE": "/static/none.png",
        }
    )
    assert config.max_consecutive == 3
    assert config.probe_timeout == 2.5
    assert config.max_candidates == 8
    assert config.base_url == "https://shop.test/"
    assert config.fallback_image == "/static/none.png"


def test_from_env_ignores_bad_numbers(caplog):
    with caplog.at_level(logging.WARNING, logger="part_curation"):
        config = CurationConfig.from_env({"PART_CURATION_PROBE_TIMEOUT": "soon"})
    assert config.probe_timeout == DEFAULT_PROBE_TIMEOUT
    assert config.max_consecutive == DEFAULT_MAX_CONSECUTIVE
    assert config.fallback_image == DEFAULT_FALLBACK_IMAGE
    assert "PART_CURATION_PROBE_TIMEOUT" in caplog.text
