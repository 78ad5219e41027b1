from quart import Blueprint, jsonify

from clinidex.app.services.container import get_services, get_telemetry


stats_bp = Blueprint("stats", __name__, url_prefix="/api/stats")


@stats_bp.get("")
async def get_stats():
    stats = await get_services().db.system_stats.get_stats()
    return jsonify(stats.as_dict())


@stats_bp.post("/visit")
async def record_visit():
    get_telemetry().record_visit()
    return "", 204
