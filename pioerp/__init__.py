import logging

from flask import Flask

from .extensions import db
from .config import Config
from .errors import register_error_handlers
from .logging_config import configure_logging, register_request_logging
from .utils import agora

logger = logging.getLogger(__name__)


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.json.ensure_ascii = False
    app.json.sort_keys = False

    configure_logging(app.config["LOG_LEVEL"])

    db.init_app(app)

    # Blueprints
    from pioerp.blueprints.catalogo import catalogo_bp
    from pioerp.blueprints.endereco import endereco_bp
    from pioerp.blueprints.equipamento import equipamento_bp
    from pioerp.blueprints.reparo import reparo_bp
    from pioerp.blueprints.internalizacao import internalizacao_bp
    from pioerp.blueprints.movimentacao import movimentacao_bp
    from pioerp.blueprints.relatorios import relatorios_bp

    app.register_blueprint(catalogo_bp)
    app.register_blueprint(endereco_bp)
    app.register_blueprint(equipamento_bp)
    app.register_blueprint(reparo_bp)
    app.register_blueprint(internalizacao_bp)
    app.register_blueprint(movimentacao_bp)
    app.register_blueprint(relatorios_bp)

    register_error_handlers(app)
    register_request_logging(app)

    @app.get("/api/health")
    def health():
        return {"status": "ok", "timestamp": agora().isoformat()}

    # cria tabelas
    with app.app_context():
        from . import models  # noqa: F401
        db.create_all()

    logger.info("PIOERP iniciado (%s)", app.config["SQLALCHEMY_DATABASE_URI"].split("@")[-1])
    return app
