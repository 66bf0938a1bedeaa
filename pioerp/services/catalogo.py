import logging

from sqlalchemy import func, select

from pioerp.errors import ConflictError, NotFoundError, ValidationError
from pioerp.extensions import db, transacao
from pioerp.models import EquipamentoFisico, ItemCatalogo
from pioerp.models.status import StatusEquipamento
from pioerp.utils import texto, to_bool, to_int

logger = logging.getLogger(__name__)


def buscar_ativo(item_catalogo_id) -> ItemCatalogo:
    item = db.session.get(ItemCatalogo, item_catalogo_id)
    if not item or not item.ativo:
        raise NotFoundError("Item de catálogo não encontrado ou inativo.")
    return item


def _validar_faixa(minimo: int, maximo: int):
    if maximo < minimo:
        raise ValidationError("Estoque máximo não pode ser menor que o mínimo.")


def criar(dados: dict) -> ItemCatalogo:
    nome = texto(dados.get("nome"))
    categoria = texto(dados.get("categoria"))
    if not nome:
        raise ValidationError('Campo "nome" é obrigatório.')
    if not categoria:
        raise ValidationError('Campo "categoria" é obrigatório.')

    minimo = to_int(dados.get("estoque_minimo"), "estoque_minimo", minimo=0) or 0
    maximo = to_int(dados.get("estoque_maximo"), "estoque_maximo", minimo=0) or 0
    _validar_faixa(minimo, maximo)

    with transacao():
        item = ItemCatalogo(
            nome=nome,
            categoria=categoria,
            codigo=texto(dados.get("codigo")),
            estoque_minimo=minimo,
            estoque_maximo=maximo,
            ativo=True,
        )
        db.session.add(item)
    logger.info("Item de catálogo criado: %s", item.nome)
    return item


def atualizar(item_catalogo_id: int, dados: dict) -> ItemCatalogo:
    with transacao():
        item = db.session.get(ItemCatalogo, item_catalogo_id)
        if not item:
            raise NotFoundError("Item de catálogo não encontrado.")

        # merge: campos ausentes mantêm o valor atual
        nome = texto(dados["nome"]) if "nome" in dados else item.nome
        categoria = texto(dados["categoria"]) if "categoria" in dados else item.categoria
        if not nome or not categoria:
            raise ValidationError('"nome" e "categoria" não podem ser vazios.')

        minimo = item.estoque_minimo
        if "estoque_minimo" in dados:
            minimo = to_int(dados["estoque_minimo"], "estoque_minimo", obrigatorio=True, minimo=0)
        maximo = item.estoque_maximo
        if "estoque_maximo" in dados:
            maximo = to_int(dados["estoque_maximo"], "estoque_maximo", obrigatorio=True, minimo=0)
        _validar_faixa(minimo, maximo)

        item.nome = nome
        item.categoria = categoria
        if "codigo" in dados:
            item.codigo = texto(dados["codigo"])
        item.estoque_minimo = minimo
        item.estoque_maximo = maximo
        if "ativo" in dados:
            ativo = to_bool(dados["ativo"])
            if not ativo and item.ativo:
                _checar_vinculos(item.id)
            item.ativo = ativo
    return item


def _checar_vinculos(item_catalogo_id: int):
    total = db.session.scalar(
        select(func.count(EquipamentoFisico.id)).where(
            EquipamentoFisico.item_catalogo_id == item_catalogo_id,
            EquipamentoFisico.status != StatusEquipamento.VENDA.value,
        )
    )
    if total:
        raise ConflictError(
            "Não é possível desativar: existem equipamentos físicos ativos vinculados a este catálogo."
        )


def desativar(item_catalogo_id: int) -> ItemCatalogo:
    with transacao():
        item = db.session.get(ItemCatalogo, item_catalogo_id)
        if not item:
            raise NotFoundError("Item de catálogo não encontrado.")
        _checar_vinculos(item.id)
        item.ativo = False
    logger.info("Item de catálogo desativado: %s", item.nome)
    return item
