from .core_routes import core
from .donation_routes import donations_bp
from .project_routes import projects_bp
from .webhook_routes import webhooks_bp

__all__ = ["core", "donations_bp", "projects_bp", "webhooks_bp"]
