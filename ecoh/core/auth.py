from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request, session
from flask_login import login_user, logout_user
from werkzeug.security import check_password_hash

from ecoh.core.i18n import SUPPORTED_LANGS
from ecoh.core.models import Usuario
from ecoh.core.permissions import require_login

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def usuario_dto(user: Usuario) -> dict[str, object]:
    return {
        "id": user.id,
        "email": user.email,
        "nombre": user.nombre,
        "rol": user.rol.value,
        "activo": user.activo,
    }


def _request_values() -> dict[str, object]:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


@auth_bp.post("/login")
def login_post():
    values = _request_values()
    email = str(values.get("email") or "").strip().lower()
    password = str(values.get("password") or "")
    user = Usuario.query.filter_by(email=email).first()
    if not user or not user.activo or not check_password_hash(user.password_hash, password):
        logger.warning("Login rechazado para %s", email or "<vacio>")
        return jsonify({"error": "Credenciales inválidas"}), 401
    login_user(user)
    return jsonify(usuario_dto(user))


@auth_bp.post("/logout")
@require_login
def logout():
    logout_user()
    return jsonify({"ok": True})


@auth_bp.post("/lang")
def set_lang():
    lang = str(_request_values().get("lang") or "es")
    if lang not in SUPPORTED_LANGS:
        lang = "es"
    session["lang"] = lang
    return jsonify({"lang": lang})
