from flask import Blueprint, jsonify

from app.errors import NotFoundError
from app.models.project import get_project, serialize_project
from app.utils.db import get_db

projects_bp = Blueprint("projects", __name__)


@projects_bp.get("/api/projects/<project_id>")
def project_detail(project_id):
    project = get_project(get_db(), project_id)
    if not project:
        raise NotFoundError("project not found")
    return jsonify(serialize_project(project)), 200
