from contextlib import contextmanager

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


@contextmanager
def transacao():
    """Commit no final do bloco; qualquer exceção desfaz tudo."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
