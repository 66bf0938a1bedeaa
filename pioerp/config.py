import os

from dotenv import load_dotenv

load_dotenv()


def _database_url():
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        return "sqlite:///pioerp.db"
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql+psycopg://", 1)
    return db_url


class Config:
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # filial atribuída ao equipamento quando a internalização é aprovada
    ALOCACAO_FILIAL_INTERNALIZACAO = os.getenv("ALOCACAO_FILIAL_INTERNALIZACAO", "324")
    HISTORICO_LIMITE_MAXIMO = int(os.getenv("HISTORICO_LIMITE_MAXIMO", "500"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "WARNING"
