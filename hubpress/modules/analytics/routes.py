import logging
from flask import jsonify
from . import analytics_bp
from .service import fetch_page_views
from ...core.errors import AnalyticsError, ApiError

logger = logging.getLogger(__name__)


@analytics_bp.route('/pageViews', methods=['GET'])
def page_views():
    try:
        views = fetch_page_views()
    except AnalyticsError as e:
        logger.error(str(e))
        raise ApiError(500, 'internal server error')

    logger.info(f"pageViews {views}")
    return jsonify(views), 200
