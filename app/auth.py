"""
Authentication: Clerk session tokens resolved to application users
"""
from functools import wraps
from flask import Blueprint, current_app, g, jsonify, request
from flask_login import current_user
import jwt
from app import db, login_manager
from .models import User, AuditLog

auth_bp = Blueprint('auth', __name__)

_jwks_clients = {}


def _get_jwks_client(jwks_url):
    """Cached JWKS client per URL (keys are fetched lazily and cached by PyJWT)"""
    client = _jwks_clients.get(jwks_url)
    if client is None:
        client = jwt.PyJWKClient(jwks_url)
        _jwks_clients[jwks_url] = client
    return client


def verify_session_token(token):
    """Verify a Clerk session JWT, returning its claims or None"""
    jwks_url = current_app.config.get('CLERK_JWKS_URL')
    if not token or not jwks_url:
        return None

    issuer = current_app.config.get('CLERK_ISSUER') or None
    try:
        signing_key = _get_jwks_client(jwks_url).get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=['RS256'],
            issuer=issuer,
            options={'verify_aud': False, 'verify_iss': issuer is not None},
        )
    except jwt.PyJWTError as e:
        current_app.logger.debug(f'Rejected session token: {e}')
        return None

    parties = current_app.config.get('CLERK_AUTHORIZED_PARTIES') or []
    if parties and claims.get('azp') not in parties:
        current_app.logger.debug(f"Rejected session token for party {claims.get('azp')!r}")
        return None

    return claims


def get_identity():
    """Claims of the bearer token on the current request (verified once per request)"""
    if 'identity' not in g:
        header = request.headers.get('Authorization', '')
        scheme, _, token = header.partition(' ')
        g.identity = verify_session_token(token.strip()) if scheme.lower() == 'bearer' else None
    return g.identity


@login_manager.request_loader
def load_user_from_request(req):
    """Load user by the identity's subject"""
    identity = get_identity()
    if not identity or not identity.get('sub'):
        return None
    return User.get_by_clerk_id(identity['sub'])


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Unauthorized'}), 401


def identity_required(f):
    """Decorator to require a verified identity that maps to a stored user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if get_identity() is None:
            return login_manager.unauthorized()
        if not current_user.is_authenticated:
            return jsonify({'error': 'User not found'}), 404
        return f(*args, **kwargs)
    return decorated_function


def log_audit_event(event_type, description, user_id=None):
    """Log audit event"""
    if user_id is None and current_user.is_authenticated:
        user_id = current_user.id
    audit_log = AuditLog(
        user_id=user_id,
        event_type=event_type,
        event_description=description,
        ip_address=request.remote_addr,
    )
    db.session.add(audit_log)
    db.session.commit()


@auth_bp.route('/me')
@identity_required
def me():
    """Current user profile and entitlements"""
    return jsonify({
        'id': current_user.id,
        'clerk_id': current_user.clerk_id,
        'email': current_user.email,
        'name': current_user.name,
        'is_pro': current_user.is_pro,
        'plan_id': current_user.plan_id.value if current_user.plan_id else None,
        'purchased_course_ids': [p.course_id for p in current_user.purchases],
    })
