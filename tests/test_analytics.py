"""
Cloudflare page-view pass-through tests. The HTTP call is always mocked.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
import requests

from hubpress.core.errors import AnalyticsError
from hubpress.modules.analytics.service import build_page_views_query, fetch_page_views


def cloudflare_response(page_views=1234):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {
        "data": {"viewer": {"zones": [{"httpRequests1dGroups": [
            {"dimensions": {"date": "2024-01-02"}, "sum": {"requests": 9000, "pageViews": page_views}},
        ]}]}},
        "errors": None,
    }
    return response


def test_query_filters_zone_and_date():
    query = build_page_views_query("zone123", date(2024, 1, 1))
    assert 'zoneTag: "zone123"' in query
    assert 'httpRequests1dGroups(limit: 1, filter: {date_gt: "2024-01-01"})' in query
    assert "pageViews" in query


def test_fetch_page_views_sends_auth_headers(app):
    with app.app_context(), patch("hubpress.modules.analytics.service.requests.post",
                                  return_value=cloudflare_response(77)) as post:
        views = fetch_page_views(today=date(2024, 1, 3))

    assert views == 77
    args, kwargs = post.call_args
    assert args[0] == "https://api.cloudflare.com/client/v4/graphql"
    assert kwargs["headers"]["X-Auth-Key"] == "cf-token"
    assert kwargs["headers"]["X-Auth-Email"] == "ops@hub256.live"
    assert kwargs["timeout"] == 30
    assert 'date_gt: "2024-01-01"' in kwargs["json"]["query"]


def test_fetch_page_views_transport_error(app):
    with app.app_context(), patch("hubpress.modules.analytics.service.requests.post",
                                  side_effect=requests.ConnectionError("down")):
        with pytest.raises(AnalyticsError):
            fetch_page_views()


def test_fetch_page_views_unexpected_shape(app):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"data": None, "errors": [{"message": "zone not found"}]}

    with app.app_context(), patch("hubpress.modules.analytics.service.requests.post", return_value=response):
        with pytest.raises(AnalyticsError):
            fetch_page_views()


def test_page_views_route(client):
    with patch("hubpress.modules.analytics.service.requests.post", return_value=cloudflare_response(1234)):
        response = client.get("/users/pageViews")
    assert response.status_code == 200
    assert response.get_json() == 1234


def test_page_views_route_failure(client):
    failing = MagicMock()
    failing.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")

    with patch("hubpress.modules.analytics.service.requests.post", return_value=failing):
        response = client.get("/users/pageViews")
    assert response.status_code == 500
    assert response.get_json()["error_message"] == "internal server error"
