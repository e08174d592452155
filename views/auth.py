from flask import (
    Blueprint,
    redirect,
    url_for,
    request,
    jsonify,
    session,
    current_app,
)
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
import logging
from datetime import datetime

from extensions import db, redis_client
from models import User
from helpers.oauth import OAuthStateError, decode_state, generate_pkce_pair
from helpers.platforms import PlatformError, get_platform_manager
from services.authorization import (
    begin_authorization,
    complete_authorization,
    fail_authorization,
    get_authorization,
)
from services.credential_service import (
    delete_credential,
    list_credentials,
    upsert_credential,
)

# Set up logging
logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/auth")

PKCE_SESSION_KEY = "pkce_verifier:{state_id}"
PKCE_REDIS_KEY = "oauth_pkce:{state_id}"


def _request_data():
    return request.get_json(silent=True) or request.form


def _resolve_manager(platform_name):
    """Manager for a URL platform segment, or None if unsupported."""
    try:
        return get_platform_manager(platform_name)
    except ValueError:
        return None


def _unsupported(platform_name):
    return (
        jsonify({"success": False, "error": f"Unsupported platform: {platform_name}"}),
        404,
    )


# --- Users ------------------------------------------------------------------


@bp.route("/register", methods=["POST"])
def register():
    """Register a new user."""
    data = _request_data()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password")
    name = (data.get("name") or "").strip()

    if not email or not password or not name:
        return (
            jsonify({"success": False, "error": "Email, password, and name are required."}),
            400,
        )

    # Check if user already exists
    if User.query.filter_by(email=email).first():
        return jsonify({"success": False, "error": "Email already registered."}), 409

    user = User(email=email, name=name, sector=data.get("sector"))
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error registering user {email}: {str(e)}")
        return jsonify({"success": False, "error": "Could not create account."}), 500

    logger.info(f"Registered user {user.id}")
    return jsonify({"success": True, "user": user.to_dict()}), 201


@bp.route("/login", methods=["POST"])
def login():
    """Log in an existing user."""
    data = _request_data()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password")

    if not email or not password:
        return jsonify({"success": False, "error": "Email and password are required."}), 400

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        logger.info(f"Failed login attempt for {email}")
        return jsonify({"success": False, "error": "Invalid email or password."}), 401

    session.permanent = True
    login_user(user, remember=True)
    logger.info(f"User {user.id} logged in")
    return jsonify({"success": True, "user": user.to_dict()})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Log out the current user."""
    logout_user()
    return jsonify({"success": True})


@bp.route("/session")
@login_required
def session_info():
    """Return the signed-in user and when the session expires."""
    expires_at = datetime.utcnow() + current_app.permanent_session_lifetime
    return jsonify(
        {
            "user": current_user.to_dict(),
            "user_id": current_user.id,
            "expires_at": expires_at.isoformat(),
        }
    )


# --- Platform connections --------------------------------------------------


def _remember_verifier(state_id, verifier):
    session[PKCE_SESSION_KEY.format(state_id=state_id)] = verifier
    # The CLI flow has no browser session, so keep a server-side copy too.
    timeout = current_app.config.get("OAUTH_AUTHORIZATION_TIMEOUT", 300)
    redis_client.set(PKCE_REDIS_KEY.format(state_id=state_id), verifier, ex=timeout)


def _take_verifier(state_id):
    verifier = session.pop(PKCE_SESSION_KEY.format(state_id=state_id), None)
    redis_key = PKCE_REDIS_KEY.format(state_id=state_id)
    if not verifier:
        verifier = redis_client.get(redis_key)
    redis_client.delete(redis_key)
    return verifier


def start_authorization(manager, user_id):
    """
    Register a pending authorization and build the provider URL for it.

    Returns:
        Tuple of (authorization URL, PendingAuthorization).

    Raises:
        ConfigurationError: If the platform's OAuth client is not configured.
    """
    # Fail on configuration before creating any state.
    manager.get_oauth_config()

    record, state = begin_authorization(user_id, manager.get_platform_name())
    code_challenge = None
    if manager.uses_pkce:
        verifier, code_challenge = generate_pkce_pair()
        _remember_verifier(record.state_id, verifier)

    return manager.get_auth_url(state, code_challenge=code_challenge), record


@bp.route("/<platform>/connect")
@login_required
def connect(platform):
    """Redirect the user to the platform's authorization page."""
    manager = _resolve_manager(platform)
    if manager is None:
        return _unsupported(platform)

    try:
        auth_url, _ = start_authorization(manager, current_user.id)
    except PlatformError as e:
        logger.error(f"Cannot start {platform} connect for user {current_user.id}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    logger.info(f"Redirecting user {current_user.id} to {manager.display_name} authorization")
    return redirect(auth_url)


@bp.route("/<platform>/authorize", methods=["POST"])
@login_required
def authorize(platform):
    """Start an awaitable authorization and return the URL to open."""
    manager = _resolve_manager(platform)
    if manager is None:
        return _unsupported(platform)

    try:
        auth_url, record = start_authorization(manager, current_user.id)
    except PlatformError as e:
        logger.error(f"Cannot start {platform} authorization for user {current_user.id}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    return jsonify(
        {
            "authorization_url": auth_url,
            "state_id": record.state_id,
            "expires_in": current_app.config.get("OAUTH_AUTHORIZATION_TIMEOUT", 300),
        }
    )


def _finish_redirect(state_id, error=None, message=None, **params):
    """Relay the outcome to any waiter and redirect to the completion page."""
    if error:
        fail_authorization(state_id, error, message)
        return redirect(url_for("main.oauth_complete", error=error, message=message))
    complete_authorization(state_id, params.get("name"))
    return redirect(url_for("main.oauth_complete", **params))


@bp.route("/<platform>/callback")
def callback(platform):
    """Handle the provider redirect: exchange the code, fetch the profile, store the credential."""
    manager = _resolve_manager(platform)
    if manager is None:
        return _unsupported(platform)

    slug = platform.lower()
    code = request.args.get("code")
    state_param = request.args.get("state")
    provider_error = request.args.get("error")

    if provider_error:
        message = request.args.get("error_description") or provider_error
        logger.warning(f"{manager.display_name} authorization denied: {message}")
        state_id = None
        if state_param:
            try:
                denied_state = decode_state(state_param)
            except OAuthStateError:
                denied_state = None
            if denied_state and denied_state.platform == manager.get_platform_name():
                state_id = denied_state.nonce
        return _finish_redirect(state_id, error=f"{slug}_auth_failed", message=message)

    if not code or not state_param:
        return (
            jsonify({"success": False, "error": "Missing authorization code or state"}),
            400,
        )

    try:
        state = decode_state(
            state_param, max_age=current_app.config.get("OAUTH_STATE_MAX_AGE")
        )
    except OAuthStateError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    if state.platform != manager.get_platform_name():
        logger.warning(
            f"{manager.display_name} callback received a state issued for {state.platform} (user {state.user_id})"
        )
        return jsonify({"success": False, "error": "Invalid state parameter"}), 400

    try:
        code_verifier = _take_verifier(state.nonce) if manager.uses_pkce else None
        token_data = manager.exchange_code(code, code_verifier=code_verifier)
        profile = manager.fetch_profile(token_data["access_token"])
    except PlatformError as e:
        logger.error(
            f"{manager.display_name} callback failed for user {state.user_id}: {e.error_code} - {e.message}"
        )
        return _finish_redirect(state.nonce, error=e.error_code, message=e.message)
    except Exception as e:
        logger.exception(f"Unexpected error in {manager.display_name} callback: {str(e)}")
        return _finish_redirect(state.nonce, error="unexpected_error", message=str(e))

    try:
        upsert_credential(
            state.user_id,
            manager.platform,
            manager.build_credential_fields(token_data, profile),
        )
    except SQLAlchemyError as e:
        logger.error(
            f"Error storing {manager.display_name} credential for user {state.user_id}: {str(e)}"
        )
        return _finish_redirect(
            state.nonce, error="database_error", message="Failed to save credentials."
        )

    logger.info(
        f"User {state.user_id} connected {manager.display_name} account {profile.account_id}"
    )
    return _finish_redirect(
        state.nonce, success=f"{slug}_connected", name=profile.account_name or ""
    )


@bp.route("/<platform>/disconnect", methods=["POST"])
@login_required
def disconnect(platform):
    """Remove the stored credential for the platform."""
    manager = _resolve_manager(platform)
    if manager is None:
        return _unsupported(platform)

    try:
        deleted = delete_credential(current_user.id, manager.platform)
    except SQLAlchemyError as e:
        logger.error(
            f"Error disconnecting {manager.display_name} for user {current_user.id}: {str(e)}"
        )
        return jsonify({"success": False, "error": "Failed to disconnect account."}), 500

    if not deleted:
        return (
            jsonify(
                {"success": False, "error": f"{manager.display_name} account not connected"}
            ),
            404,
        )
    return jsonify({"success": True, "platform": manager.get_platform_name()})


@bp.route("/connections")
@login_required
def connections():
    """List the user's connected platforms with token status."""
    return jsonify(
        {"connections": [credential.to_dict() for credential in list_credentials(current_user.id)]}
    )


@bp.route("/authorizations/<state_id>")
@login_required
def authorization_status(state_id):
    """Status of an awaitable authorization started by this user."""
    record = get_authorization(state_id)
    if record is None or record.user_id != current_user.id:
        return jsonify({"status": "expired", "state_id": state_id}), 404
    return jsonify(record.to_dict())
