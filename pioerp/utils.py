from datetime import datetime, timezone

from flask import jsonify, request

from pioerp.errors import ValidationError


def agora() -> datetime:
    # timestamps gravados sem fuso, sempre em UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def minutos_entre(inicio: datetime, fim: datetime) -> int:
    """Minutos inteiros de um intervalo: floor(segundos / 60), nunca negativo."""
    segundos = (fim - inicio).total_seconds()
    return max(0, int(segundos // 60))


def texto(v) -> str | None:
    if v is None:
        return None
    v = str(v).strip()
    return v or None


def to_int(v, campo: str, obrigatorio: bool = False, minimo: int | None = None) -> int | None:
    if v is None or (isinstance(v, str) and not v.strip()):
        if obrigatorio:
            raise ValidationError(f'"{campo}" é obrigatório.')
        return None
    if isinstance(v, bool):
        raise ValidationError(f'"{campo}" deve ser um número inteiro.')
    try:
        n = int(str(v).strip())
    except (TypeError, ValueError):
        raise ValidationError(f'"{campo}" deve ser um número inteiro.')
    if minimo is not None and n < minimo:
        raise ValidationError(f'"{campo}" deve ser maior ou igual a {minimo}.')
    return n


def to_bool(v, default: bool = True) -> bool:
    if v is None or (isinstance(v, str) and not v.strip()):
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() not in ("false", "0", "nao", "não")


def iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def resposta(data=None, message=None, total=None, status=200):
    corpo = {"success": True}
    if data is not None:
        corpo["data"] = data
    if message is not None:
        corpo["message"] = message
    if total is not None:
        corpo["total"] = total
    return jsonify(corpo), status


def dados_json() -> dict:
    # sem corpo: nenhum campo informado
    if not request.get_data(cache=True).strip():
        return {}
    dados = request.get_json(force=True, silent=True)
    if dados is None:
        raise ValidationError("Corpo da requisição não é um JSON válido.")
    if not isinstance(dados, dict):
        raise ValidationError("Corpo da requisição deve ser um objeto JSON.")
    return dados
