# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for address geocoding.
"""

import pytest
import requests
from unittest.mock import Mock

from hemolink.domain.errors import UpstreamUnavailableException
from hemolink.services.geocoding import Geocoder, GeocoderConfig


def session_returning(payload=None, error=None):
    session = Mock(spec=requests.Session)
    if error is not None:
        session.get.side_effect = error
        return session
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    session.get.return_value = response
    return session


class TestGeocoder:

    def test_resolves_first_result(self):
        session = session_returning([{
            "lat": "-23.55",
            "lon": "-46.63",
            "display_name": "Sao Paulo, Brazil",
            "address": {"city": "Sao Paulo", "country": "Brazil"}
        }])
        geocoder = Geocoder(GeocoderConfig(url="http://geo.test/search"), session)

        result = geocoder.geocode("Av. Paulista 1000")

        assert result.location.coordinates == [-46.63, -23.55]
        assert result.city == "Sao Paulo"
        assert result.country == "Brazil"
        assert result.original_address == "Av. Paulista 1000"

        args, kwargs = session.get.call_args
        assert args[0] == "http://geo.test/search"
        assert kwargs["params"]["q"] == "Av. Paulista 1000"
        assert kwargs["headers"]["User-Agent"] == "hemolink/1.0"

    def test_town_used_when_no_city(self):
        session = session_returning([{"lat": "1", "lon": "2", "address": {"town": "Smallville"}}])

        result = Geocoder(session=session).geocode("Main Street")

        assert result.city == "Smallville"
        assert result.country == "Unknown"

    def test_unknown_address(self):
        assert Geocoder(session=session_returning([])).geocode("Nowhere") is None

    @pytest.mark.parametrize("address", ["", "   ", None])
    def test_blank_address_not_sent(self, address):
        session = session_returning([])

        assert Geocoder(session=session).geocode(address) is None
        session.get.assert_not_called()

    def test_transport_failure(self):
        session = session_returning(error=requests.ConnectionError("refused"))

        assert Geocoder(session=session).geocode("Main Street") is None

    def test_malformed_coordinates(self):
        session = session_returning([{"lat": "north", "lon": "2"}])

        assert Geocoder(session=session).geocode("Main Street") is None

    def test_require_geocode_raises_when_unresolved(self):
        with pytest.raises(UpstreamUnavailableException) as exc_info:
            Geocoder(session=session_returning([])).require_geocode("Nowhere")

        assert exc_info.value.status_code == 503

    def test_config_from_env(self, monkeypatch):
        monkeypatch.setenv("GEOCODER_URL", "http://geo.internal/search")
        monkeypatch.setenv("GEOCODER_TIMEOUT", "2.5")

        config = GeocoderConfig.from_env()

        assert config.url == "http://geo.internal/search"
        assert config.timeout == 2.5
