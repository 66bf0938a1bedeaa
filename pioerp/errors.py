"""Erros de negócio e tradução para o envelope JSON da API.

Toda exceção que chega aqui já desfez a transação corrente: os handlers
fazem ``db.session.rollback()`` antes de responder, então escritas parciais
nunca ficam visíveis.
"""
import logging

from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


def _mensagem_integridade(err: IntegrityError) -> str:
    detalhe = str(err.orig).lower()
    if "unique" in detalhe or "duplicate" in detalhe:
        return "Registro duplicado: um campo único já existe com esse valor."
    if "foreign key" in detalhe:
        return "Operação bloqueada: existem registros dependentes."
    return f"Violação de regra de negócio: {err.orig}"


def _erro(message, status, detail=None):
    corpo = {"success": False, "message": message}
    if detail is not None and current_app.debug:
        corpo["detail"] = detail
    return jsonify(corpo), status


def register_error_handlers(app):
    from pioerp.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(err):
        db.session.rollback()
        return _erro(err.message, err.status_code)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err):
        db.session.rollback()
        logger.warning("Violação de integridade: %s", err.orig)
        return _erro(_mensagem_integridade(err), 409)

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(err):
        db.session.rollback()
        logger.exception("Erro de banco de dados")
        return _erro("Erro interno do servidor.", 500, detail=str(err))

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        db.session.rollback()
        return _erro(err.description, err.code)

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        db.session.rollback()
        logger.exception("Erro não tratado")
        return _erro("Erro interno do servidor.", 500, detail=str(err))
