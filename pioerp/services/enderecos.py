"""Hierarquia de endereços físicos: porta-pallet > sessão > pallet > caixa.

Uma única tabela auto-referenciada guarda os quatro níveis. Pallets e caixas
são endereços dos níveis ``pallet`` e ``caixa``; as rotas ``/pallets`` e
``/caixas`` são apenas recortes dessa tabela.
"""
import logging

from sqlalchemy import case, select

from pioerp.errors import NotFoundError, ValidationError
from pioerp.extensions import db, transacao
from pioerp.models import Endereco
from pioerp.models.status import NivelEndereco, valores
from pioerp.utils import texto, to_bool, to_int

logger = logging.getLogger(__name__)

_ORDEM_NIVEL = case(
    {n.value: n.rank for n in NivelEndereco},
    value=Endereco.nivel,
)


def _nivel(v) -> NivelEndereco:
    try:
        return NivelEndereco(v)
    except ValueError:
        raise ValidationError(f"Nível inválido. Valores aceitos: {', '.join(valores(NivelEndereco))}")


def buscar_ativo(endereco_id, mensagem="Endereço de destino não encontrado ou inativo.") -> Endereco:
    end = db.session.get(Endereco, endereco_id)
    if not end or not end.ativo:
        raise NotFoundError(mensagem)
    return end


def listar(nivel=None, ativo=None) -> list[Endereco]:
    stmt = select(Endereco).where(Endereco.ativo == to_bool(ativo, default=True))
    if nivel:
        stmt = stmt.where(Endereco.nivel == _nivel(nivel).value)
    return db.session.scalars(stmt.order_by(_ORDEM_NIVEL, Endereco.codigo)).all()


def arvore() -> list[dict]:
    rows = db.session.scalars(
        select(Endereco).where(Endereco.ativo.is_(True)).order_by(_ORDEM_NIVEL, Endereco.codigo)
    ).all()

    nos = {
        r.id: {
            "id": r.id, "codigo": r.codigo, "descricao": r.descricao,
            "nivel": r.nivel, "parent_id": r.parent_id, "filhos": [],
        }
        for r in rows
    }

    raizes = []
    for r in rows:
        pai = nos.get(r.parent_id) if r.parent_id else None
        if pai is not None:
            pai["filhos"].append(nos[r.id])
        else:
            raizes.append(nos[r.id])
    return raizes


def _validar_pai(nivel: NivelEndereco, parent_id) -> Endereco | None:
    esperado = nivel.nivel_pai
    if esperado is None:
        if parent_id:
            raise ValidationError('"porta_pallet" não pode ter endereço pai.')
        return None

    if not parent_id:
        raise ValidationError(f'"parent_id" é obrigatório para o nível "{nivel.value}".')

    pai = buscar_ativo(parent_id, "Endereço pai não encontrado ou inativo.")
    if pai.nivel != esperado.value:
        raise ValidationError(
            f'Endereço pai de "{nivel.value}" deve ser do nível "{esperado.value}" (recebido "{pai.nivel}").'
        )
    return pai


def _novo(codigo, nivel: NivelEndereco, parent_id=None, descricao=None) -> Endereco:
    codigo = texto(codigo)
    if not codigo:
        raise ValidationError('"codigo" é obrigatório.')
    pai = _validar_pai(nivel, to_int(parent_id, "parent_id"))
    end = Endereco(codigo=codigo, descricao=texto(descricao), nivel=nivel.value, parent=pai, ativo=True)
    db.session.add(end)
    db.session.flush()
    return end


def criar(dados: dict) -> Endereco:
    if not texto(dados.get("codigo")):
        raise ValidationError('"codigo" é obrigatório.')
    nivel = _nivel(dados.get("nivel"))
    with transacao():
        end = _novo(dados.get("codigo"), nivel, dados.get("parent_id"), dados.get("descricao"))
    logger.info("Endereço criado: %s (%s)", end.codigo, end.nivel)
    return end


def atualizar(endereco_id: int, dados: dict) -> Endereco:
    with transacao():
        end = db.session.get(Endereco, endereco_id)
        if not end:
            raise NotFoundError("Endereço não encontrado.")

        if "codigo" in dados:
            codigo = texto(dados.get("codigo"))
            if not codigo:
                raise ValidationError('"codigo" não pode ser vazio.')
            end.codigo = codigo
        if "descricao" in dados:
            end.descricao = texto(dados.get("descricao"))
        if "ativo" in dados:
            end.ativo = to_bool(dados.get("ativo"))
    return end


def desativar(endereco_id: int) -> Endereco:
    # soft delete: equipamentos e histórico continuam apontando para o registro
    return atualizar(endereco_id, {"ativo": False})


# ------------------------- pallets / caixas -------------------------
def listar_por_nivel(nivel: NivelEndereco, parent_id=None) -> list[Endereco]:
    stmt = select(Endereco).where(Endereco.nivel == nivel.value, Endereco.ativo.is_(True))
    parent_id = to_int(parent_id, "parent_id")
    if parent_id:
        stmt = stmt.where(Endereco.parent_id == parent_id)
    return db.session.scalars(stmt.order_by(Endereco.codigo)).all()


def criar_pallet(dados: dict) -> Endereco:
    codigo = texto(dados.get("codigo"))
    if not codigo:
        raise ValidationError('"codigo" é obrigatório.')
    endereco_id = to_int(dados.get("endereco_id"), "endereco_id", obrigatorio=True)
    with transacao():
        pallet = _novo(codigo.upper(), NivelEndereco.PALLET, endereco_id)
    return pallet


def criar_caixa(dados: dict) -> Endereco:
    codigo = texto(dados.get("codigo"))
    if not codigo:
        raise ValidationError('"codigo" é obrigatório.')
    pallet_id = to_int(dados.get("pallet_id"), "pallet_id", obrigatorio=True)
    with transacao():
        caixa = _novo(codigo.upper(), NivelEndereco.CAIXA, pallet_id)
    return caixa


def montar_porta_pallet(codigo: str = "PP01", sessoes: int = 18) -> Endereco:
    """Cria um porta-pallet com suas sessões (PP01.S01, PP01.S02, ...)."""
    with transacao():
        pp = _novo(codigo, NivelEndereco.PORTA_PALLET, descricao=f"Porta-pallet {codigo}")
        for s in range(1, sessoes + 1):
            _novo(f"{codigo}.S{s:02d}", NivelEndereco.SESSAO, pp.id)
    logger.info("Porta-pallet %s montado com %d sessões", codigo, sessoes)
    return pp
