from __future__ import annotations

import pytest

from linkcrawler.config import CrawlConfig
from linkcrawler.errors import ConfigError


def test_defaults():
    config = CrawlConfig().validate()
    assert config.workers == 3
    assert config.target == "http://localhost:8080"
    assert config.page == "/index.html"
    assert config.max_depth == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"workers": 0},
        {"max_depth": -1},
        {"timeout_s": 0},
        {"edge_capacity": 0},
        {"submit_capacity": -5},
        {"target": "ftp://site.com"},
        {"target": "/index.html"},
    ],
)
def test_invalid_values(kwargs):
    with pytest.raises(ConfigError):
        CrawlConfig(**kwargs).validate()


def test_config_error_is_value_error():
    with pytest.raises(ValueError):
        CrawlConfig(workers=-1).validate()
