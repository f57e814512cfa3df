"""
HTTP API for the graduate job platform.

All routes live under /api/v1. Registration and login are public; every
other route needs a Bearer token issued by /login.
"""

from typing import Any, Dict, Optional

from flask import Blueprint, Flask, current_app, g, jsonify, request
from flask_cors import CORS

from . import services, storage
from .auth import admin_only, current_passport, employer_only, graduate_only, require_auth
from .database import init_database, make_session_factory
from .env import DEFAULT_SECRET_KEY, Config, load_config
from .errors import GradJobsError, ValidationError
from .logger import get_logger

logger = get_logger()

api = Blueprint("api", __name__, url_prefix="/api/v1")


def get_db():
    """Session for the current request, opened on first use."""
    if "db_session" not in g:
        g.db_session = current_app.extensions["gradjobs_sessions"]()
    return g.db_session


def get_config() -> Config:
    return current_app.extensions["gradjobs_config"]


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


# Public

@api.route("/registration", methods=["POST"])
def registration():
    user = services.register_user(get_db(), json_body(), get_config())
    return jsonify({"data": user.to_dict()}), 200


@api.route("/login", methods=["POST"])
def login():
    token = services.login(get_db(), json_body(), get_config())
    return jsonify({"token": token}), 200


# Jobs

@api.route("/jobs", methods=["GET"])
@graduate_only
def list_open_jobs():
    jobs = storage.list_jobs(get_db(), recruiting=True)
    return jsonify({"jobs": [j.to_dict() for j in jobs]}), 200


@api.route("/jobs", methods=["POST"])
@employer_only
def create_job():
    job = services.post_job(get_db(), json_body())
    return jsonify({"job": job.to_dict()}), 200


@api.route("/jobs/filtered", methods=["GET"], defaults={"graduate_id": None})
@api.route("/jobs/filtered/<int:graduate_id>", methods=["GET"])
@require_auth
def filtered_jobs(graduate_id: Optional[int]):
    target = services.resolve_target_id(current_passport(), graduate_id)
    matches = services.match_jobs(get_db(), target)
    return jsonify({"jobs": [job.to_dict() for job, _ in matches]}), 200


@api.route("/jobs/skills", methods=["POST"])
@require_auth
def attach_job_skill():
    data = json_body()
    services.attach_job_skill(get_db(), data)
    return jsonify({"tree": {"job_id": data["job_id"], "job_skill_id": data["job_skill_id"]}}), 200


@api.route("/jobs/close", methods=["POST"], strict_slashes=False)
@require_auth
def close_job():
    job = services.set_recruiting(get_db(), json_body())
    return jsonify({"job_update": job.to_dict()}), 200


@api.route("/jobs/hidden", methods=["GET"])
@require_auth
def hidden_jobs():
    jobs = storage.list_jobs(get_db(), recruiting=False)
    return jsonify({"jobs": [j.to_dict() for j in jobs]}), 200


# Applications

@api.route("/application", methods=["POST"])
@graduate_only
def create_application():
    application = services.apply_to_job(get_db(), json_body())
    return jsonify({"job_application": application.to_dict()}), 200


@api.route("/application", methods=["GET"])
@require_auth
def list_applications():
    applications = storage.find_applications(get_db())
    return jsonify({"job_applications": [a.to_dict() for a in applications]}), 200


@api.route("/application/<int:job_id>/<int:graduate_id>", methods=["GET"])
@require_auth
def get_application(job_id: int, graduate_id: int):
    application = services.get_application(get_db(), job_id, graduate_id)
    return jsonify({"job_application": application.to_dict()}), 200


@api.route("/application/job/<int:job_id>", methods=["GET"])
@require_auth
def applications_for_job(job_id: int):
    applications = storage.find_applications(get_db(), job_id=job_id)
    return jsonify({"job_applications": [a.to_dict() for a in applications]}), 200


@api.route("/application/graduate/<int:graduate_id>", methods=["GET"])
@require_auth
def applications_for_graduate(graduate_id: int):
    applications = storage.find_applications(get_db(), graduate_id=graduate_id)
    return jsonify({"job_applications": [a.to_dict() for a in applications]}), 200


# Users

@api.route("/user/graduate", methods=["GET"])
@require_auth
def list_graduates():
    users = storage.list_users(get_db(), graduate=True)
    return jsonify({"graduates": [u.to_dict() for u in users]}), 200


@api.route("/user/graduate/filtered", methods=["GET"], defaults={"graduate_id": None})
@api.route("/user/graduate/filtered/<int:graduate_id>", methods=["GET"])
@require_auth
def filtered_graduates(graduate_id: Optional[int]):
    target = services.resolve_target_id(current_passport(), graduate_id)
    matches = services.match_peers(get_db(), target)
    return jsonify({"cvs": [cv.to_dict() for cv, _ in matches]}), 200


@api.route("/user/employer", methods=["GET"])
@require_auth
def list_employers():
    users = storage.list_users(get_db(), employer=True)
    return jsonify({"employers": [u.to_dict() for u in users]}), 200


# Friends

@api.route("/friends", methods=["GET"])
@require_auth
def list_friendships():
    friendships = storage.find_friendships(get_db())
    return jsonify({"friends": [f.to_dict() for f in friendships]}), 200


@api.route("/friends", methods=["POST"])
@require_auth
def create_friendship():
    friendship = services.add_friend(get_db(), json_body())
    return jsonify({"friends": friendship.to_dict()}), 200


@api.route("/friends/<int:user_id>", methods=["GET"])
@require_auth
def friendships_of(user_id: int):
    friendships = storage.find_friendships(get_db(), user_id=user_id)
    return jsonify({"friends": [f.to_dict() for f in friendships]}), 200


@api.route("/friends/<int:user_id>/<int:friend_id>", methods=["GET"])
@require_auth
def get_friendship(user_id: int, friend_id: int):
    friendship = services.get_friendship(get_db(), user_id, friend_id)
    return jsonify({"friend": friendship.to_dict()}), 200


# Messages

@api.route("/messages", methods=["GET"])
@require_auth
def list_messages():
    messages = storage.list_messages(get_db())
    return jsonify({"messages": [m.to_dict() for m in messages]}), 200


@api.route("/messages", methods=["POST"])
@require_auth
def send_message():
    message = services.send_message(get_db(), json_body())
    return jsonify({"message": message.to_dict()}), 200


@api.route("/messages/<int:sender_id>/<int:receiver_id>", methods=["GET"])
@require_auth
def conversation(sender_id: int, receiver_id: int):
    messages = storage.conversation(get_db(), sender_id, receiver_id)
    return jsonify({"messages": [m.to_dict() for m in messages]}), 200


@api.route("/messages/lasts/<int:user_id>", methods=["GET"])
@require_auth
def last_messages(user_id: int):
    messages = services.last_message_per_conversation(storage.messages_for_user(get_db(), user_id))
    return jsonify({"messages": [m.to_dict() for m in messages]}), 200


# CVs

@api.route("/cv", methods=["GET"])
@require_auth
def list_cvs():
    cvs = storage.list_cvs(get_db())
    return jsonify({"cv": [cv.to_dict() for cv in cvs]}), 200


@api.route("/cv/<int:cv_id>", methods=["GET"])
@require_auth
def get_cv(cv_id: int):
    cv = services.get_cv(get_db(), cv_id)
    return jsonify({"cv": cv.to_dict()}), 200


@api.route("/cv", methods=["POST"])
@require_auth
def submit_cv():
    cv = services.submit_cv(get_db(), json_body())
    return jsonify({"cv": cv.to_dict()}), 200


@api.route("/cv/skills", methods=["GET"])
@require_auth
def list_cv_skills():
    return jsonify({"message": "Not implemented"}), 501


@api.route("/cv/skills", methods=["POST"])
@require_auth
def attach_cv_skill():
    data = json_body()
    services.attach_cv_skill(get_db(), data)
    return jsonify({"skill": {"cv_id": data["cv_id"], "job_skill_id": data["job_skill_id"]}}), 200


# Reference data

@api.route("/skills", methods=["GET"])
@require_auth
def list_skills():
    skills = storage.list_skills(get_db())
    return jsonify({"skills": [s.to_dict() for s in skills]}), 200


@api.route("/skills", methods=["POST"])
@admin_only
def create_skill():
    skill = services.create_skill(get_db(), json_body())
    return jsonify({"skill": skill.to_dict()}), 200


@api.route("/job_roles", methods=["GET"])
@require_auth
def list_roles():
    roles = storage.list_roles(get_db())
    return jsonify({"job_roles": [r.to_dict() for r in roles]}), 200


@api.route("/job_roles", methods=["POST"])
@admin_only
def create_role():
    role = services.create_role(get_db(), json_body())
    return jsonify({"job_role": role.to_dict()}), 200


def _route_name() -> str:
    return request.url_rule.rule if request.url_rule else request.path


def handle_error(error: GradJobsError):
    get_db().rollback()
    logger.record_failure(_route_name(), type(error).__name__)
    logger.warning(
        "Request failed",
        method=request.method,
        path=request.path,
        status=error.status_code,
        error=error.message,
    )
    return jsonify(error.to_dict()), error.status_code


def create_app(config: Optional[Config] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Settings to use (default: read from the environment)

    Returns:
        Configured Flask app with its database initialized
    """
    config = config or load_config()
    logger.set_level(config.log_level)
    if config.secret_key == DEFAULT_SECRET_KEY:
        logger.warning("GRADJOBS_SECRET_KEY not set, using the insecure default key")

    init_database(config.db_path)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.extensions["gradjobs_config"] = config
    app.extensions["gradjobs_sessions"] = make_session_factory(config.db_path)

    CORS(app, origins="*", methods=["GET", "POST", "OPTIONS"])

    @app.route("/", methods=["GET"])
    def hello():
        return jsonify({"hello": "world !"}), 200

    @app.before_request
    def count_request():
        logger.record_request(_route_name())

    @app.teardown_appcontext
    def close_db(exception=None):
        session = g.pop("db_session", None)
        if session is not None:
            session.close()

    app.register_blueprint(api)
    app.register_error_handler(GradJobsError, handle_error)
    return app
