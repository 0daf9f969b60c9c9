import logging
from datetime import date, timedelta
import requests
from ...core.config import get_config_value
from ...core.errors import AnalyticsError

logger = logging.getLogger(__name__)

PAGE_VIEWS_QUERY = (
    'query { viewer { zones(filter: {zoneTag: "%(zone)s"}) { '
    'httpRequests1dGroups(limit: 1, filter: {date_gt: "%(since)s"}) { '
    'dimensions { date } sum { requests pageViews } } } } }'
)


def build_page_views_query(zone_tag, since):
    return PAGE_VIEWS_QUERY % {'zone': zone_tag, 'since': since.isoformat()}


def fetch_page_views(days_back=2, today=None):
    """Page views reported by Cloudflare for the first day group after today - days_back.

    Raises AnalyticsError on transport, HTTP or response-shape failures.
    """
    since = (today or date.today()) - timedelta(days=days_back)
    headers = {
        'Content-Type': 'application/json',
        'X-Auth-Key': get_config_value('CLOUDFLARE_TOKEN') or '',
        'X-Auth-Email': get_config_value('CLOUDFLARE_EMAIL') or '',
    }
    payload = {'query': build_page_views_query(get_config_value('CLOUDFLARE_ZONE_TAG') or '', since)}

    try:
        response = requests.post(
            get_config_value('CLOUDFLARE_GRAPHQL_URL'), json=payload, headers=headers, timeout=30
        )
        response.raise_for_status()
        body = response.json()
    except requests.RequestException as e:
        raise AnalyticsError(f'Cloudflare request failed: {e}') from e
    except ValueError as e:
        raise AnalyticsError(f'Cloudflare returned invalid JSON: {e}') from e

    logger.debug(f"Cloudflare response: {body}")

    try:
        page_views = body['data']['viewer']['zones'][0]['httpRequests1dGroups'][0]['sum']['pageViews']
    except (KeyError, IndexError, TypeError) as e:
        errors = body.get('errors') if isinstance(body, dict) else None
        raise AnalyticsError(f'Unexpected Cloudflare response shape: {errors or e}') from e

    return int(page_views)
