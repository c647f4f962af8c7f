from __future__ import annotations

import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///ecoh.db",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # Dias restantes bajo los cuales un plazo se marca "proximo"
    PLAZO_ALERTA_DIAS = int(os.getenv("PLAZO_ALERTA_DIAS", "10"))
    PAGE_SIZE_DEFAULT = 10
    PAGE_SIZE_MAX = 100
    EXPORT_LIMIT = int(os.getenv("EXPORT_LIMIT", "5000"))
