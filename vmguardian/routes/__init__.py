# Routes package - contains Flask blueprints

# Import blueprints for easy access
from vmguardian.routes.auth import auth_bp
from vmguardian.routes.portal import portal_bp
from vmguardian.routes.api.users import api_users_bp
from vmguardian.routes.api.vms import api_vms_bp
from vmguardian.routes.api.vm_requests import api_vm_requests_bp
from vmguardian.routes.api.vm_types import api_vm_types_bp
from vmguardian.routes.api.notifications import api_notifications_bp
from vmguardian.routes.api.coursework import api_coursework_bp
from vmguardian.routes.api.resources import api_resources_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(portal_bp)
    app.register_blueprint(api_users_bp)
    app.register_blueprint(api_vms_bp)
    app.register_blueprint(api_vm_requests_bp)
    app.register_blueprint(api_vm_types_bp)
    app.register_blueprint(api_notifications_bp)
    app.register_blueprint(api_coursework_bp)
    app.register_blueprint(api_resources_bp)
