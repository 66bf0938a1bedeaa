"""Máquina de estados do equipamento físico.

Toda mudança de status passa por ``aplicar_movimento``, que altera o
equipamento e grava a linha de histórico na mesma sessão. Quem chama é
responsável por estar dentro de ``transacao()``: as duas escritas são
confirmadas juntas ou desfeitas juntas.
"""
import logging
from enum import Enum
from types import MappingProxyType
from typing import NamedTuple

from flask import current_app
from sqlalchemy import select

from pioerp.errors import ConflictError, NotFoundError, ValidationError
from pioerp.extensions import db, transacao
from pioerp.models import EquipamentoFisico, HistoricoMovimentacao, Reparo
from pioerp.models.status import (
    STATUS_FORA_DO_ESTOQUE,
    NivelEndereco,
    StatusEquipamento,
    StatusReparo,
)
from pioerp.services import catalogo, enderecos
from pioerp.utils import texto, to_int

logger = logging.getLogger(__name__)


class TipoEntrada(str, Enum):
    COMPRA = "entrada_compra"
    RETORNO_REPARO = "entrada_retorno_reparo"
    RECEBIMENTO = "entrada_recebimento"


class DestinoSaida(str, Enum):
    SAIDA_USO = "saida_uso"
    AG_TRIAGEM = "ag_triagem"
    VENDA = "venda"
    PRE_VENDA = "pre_venda"
    REPOSICAO = "reposicao"


class Acao(NamedTuple):
    novo_status: StatusEquipamento
    tipo: str
    descricao: str


TRANSICOES = MappingProxyType({
    DestinoSaida.SAIDA_USO: Acao(StatusEquipamento.EM_USO, "saida_uso", "Enviado para uso (removido do estoque)"),
    DestinoSaida.AG_TRIAGEM: Acao(StatusEquipamento.AG_TRIAGEM, "saida_triagem", "Alocado em pallet para triagem"),
    DestinoSaida.VENDA: Acao(StatusEquipamento.VENDA, "saida_venda", "Baixado para venda/sucata"),
    DestinoSaida.PRE_VENDA: Acao(StatusEquipamento.PRE_VENDA, "movimentacao", "Movido para prateleira de pré-venda"),
    DestinoSaida.REPOSICAO: Acao(StatusEquipamento.REPOSICAO, "entrada_retorno_reparo", "Retornado ao estoque"),
})

# montar pallet: só sai das prateleiras de recebimento
STATUS_ORIGEM_LOTE = frozenset({StatusEquipamento.PRE_TRIAGEM.value, StatusEquipamento.PRE_VENDA.value})
STATUS_DESTINO_LOTE = (StatusEquipamento.AG_TRIAGEM, StatusEquipamento.VENDA)

TIPO_TRANSFERENCIA_LOTE = "transferencia_lote"


def _valores(itens) -> str:
    return ", ".join(i.value for i in itens)


def buscar(equipamento_id, for_update=False) -> EquipamentoFisico:
    stmt = select(EquipamentoFisico).where(EquipamentoFisico.id == equipamento_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    equip = db.session.scalars(stmt).first()
    if not equip:
        raise NotFoundError("Equipamento não encontrado.")
    return equip


def aplicar_movimento(equip, novo_status, tipo, endereco_id, observacao=None) -> HistoricoMovimentacao:
    novo_status = StatusEquipamento(novo_status).value
    hist = HistoricoMovimentacao(
        equipamento_id=equip.id,
        tipo=tipo,
        status_anterior=equip.status,
        status_novo=novo_status,
        endereco_origem_id=equip.endereco_id,
        endereco_destino_id=endereco_id,
        observacao=observacao,
    )
    equip.status = novo_status
    equip.endereco_id = endereco_id
    db.session.add(hist)
    return hist


def reparo_ativo(equipamento_id) -> Reparo | None:
    return db.session.scalars(
        select(Reparo)
        .where(Reparo.equipamento_id == equipamento_id, Reparo.status != StatusReparo.FINALIZADO.value)
        .limit(1)
    ).first()


def abrir_reparo_se_necessario(equipamento_id, descricao_problema=None) -> Reparo | None:
    """Cria o reparo 'aguardando' só se o equipamento não tiver um em aberto."""
    if reparo_ativo(equipamento_id):
        return None
    rep = Reparo(
        equipamento_id=equipamento_id,
        status=StatusReparo.AGUARDANDO.value,
        descricao_problema=descricao_problema,
    )
    db.session.add(rep)
    db.session.flush()
    logger.info("Reparo %s aberto para o equipamento %s", rep.id, equipamento_id)
    return rep


# ------------------------- entrada -------------------------
def registrar_entrada(dados: dict) -> EquipamentoFisico:
    item_catalogo_id = to_int(dados.get("item_catalogo_id"), "item_catalogo_id", obrigatorio=True)
    numero_serie = texto(dados.get("numero_serie"))
    imobilizado = texto(dados.get("imobilizado"))
    if not numero_serie:
        raise ValidationError('"numero_serie" é obrigatório.')
    if not imobilizado:
        raise ValidationError('"imobilizado" é obrigatório.')

    # aceita caixa_id por compatibilidade
    endereco_id = to_int(dados.get("endereco_id") or dados.get("caixa_id"), "endereco_id", obrigatorio=True)

    try:
        tipo = TipoEntrada(dados.get("tipo_entrada") or TipoEntrada.COMPRA.value)
    except ValueError:
        raise ValidationError(f'"tipo_entrada" inválido. Aceitos: {_valores(TipoEntrada)}')

    status_inicial = (
        StatusEquipamento.PRE_TRIAGEM if tipo is TipoEntrada.RECEBIMENTO else StatusEquipamento.REPOSICAO
    )
    observacao = texto(dados.get("observacao"))

    with transacao():
        catalogo.buscar_ativo(item_catalogo_id)
        enderecos.buscar_ativo(endereco_id)

        equip = EquipamentoFisico(
            item_catalogo_id=item_catalogo_id,
            numero_serie=numero_serie,
            imobilizado=imobilizado,
            status=status_inicial.value,
            endereco_id=endereco_id,
            observacoes=observacao,
        )
        db.session.add(equip)
        db.session.flush()

        db.session.add(HistoricoMovimentacao(
            equipamento_id=equip.id,
            tipo=tipo.value,
            status_anterior=None,
            status_novo=status_inicial.value,
            endereco_destino_id=endereco_id,
            observacao=observacao,
        ))

    logger.info("Entrada do equipamento %s (%s) em %s", equip.numero_serie, status_inicial.value, endereco_id)
    return equip


# ------------------------- saída / movimentação -------------------------
def transicionar(equipamento_id: int, dados: dict) -> dict:
    tag = dados.get("status_destino")
    if not tag:
        raise ValidationError('"status_destino" é obrigatório.')
    try:
        acao = TRANSICOES[DestinoSaida(tag)]
    except ValueError:
        raise ValidationError(f'"status_destino" inválido. Aceitos: {_valores(DestinoSaida)}')

    destino_id = to_int(dados.get("endereco_destino_id") or dados.get("caixa_destino_id"), "endereco_destino_id")
    observacao = texto(dados.get("observacao"))

    with transacao():
        equip = buscar(equipamento_id, for_update=True)

        if acao.novo_status.value in STATUS_FORA_DO_ESTOQUE:
            novo_endereco_id = None
        elif destino_id:
            novo_endereco_id = enderecos.buscar_ativo(destino_id).id
        else:
            novo_endereco_id = equip.endereco_id

        status_anterior = equip.status
        aplicar_movimento(equip, acao.novo_status, acao.tipo, novo_endereco_id, observacao)

        reparo = None
        if acao.novo_status is StatusEquipamento.AG_TRIAGEM:
            reparo = abrir_reparo_se_necessario(equip.id, observacao)

    logger.info(
        "Equipamento %s: %s -> %s (%s)", equip.id, status_anterior, acao.novo_status.value, acao.tipo
    )
    return {
        "equipamento_id": equip.id,
        "status_novo": acao.novo_status.value,
        "reparo": reparo.to_dict() if reparo else None,
        "message": acao.descricao,
    }


# ------------------------- montar pallet -------------------------
def _ids(v) -> list[int]:
    if not isinstance(v, list) or not v:
        raise ValidationError('"equipamento_ids" deve ser um array não vazio.')
    ids = [to_int(i, "equipamento_ids", obrigatorio=True) for i in v]
    return list(dict.fromkeys(ids))


def montar_pallet(dados: dict) -> list[dict]:
    ids = _ids(dados.get("equipamento_ids"))

    try:
        status_destino = StatusEquipamento(dados.get("status_destino"))
    except ValueError:
        status_destino = None
    if status_destino not in STATUS_DESTINO_LOTE:
        raise ValidationError(f'"status_destino" inválido. Aceitos: {_valores(STATUS_DESTINO_LOTE)}')

    destino_id = to_int(dados.get("endereco_destino_id") or dados.get("caixa_destino_id"), "endereco_destino_id")
    if status_destino is StatusEquipamento.AG_TRIAGEM and not destino_id:
        raise ValidationError('"endereco_destino_id" é obrigatório.')
    observacao = texto(dados.get("observacao"))

    resultados = []
    with transacao():
        if destino_id:
            enderecos.buscar_ativo(destino_id)

        equips = db.session.scalars(
            select(EquipamentoFisico).where(EquipamentoFisico.id.in_(ids)).with_for_update()
        ).all()
        if len(equips) != len(ids):
            raise NotFoundError("Um ou mais equipamentos não foram encontrados.")

        invalidos = [e for e in equips if e.status not in STATUS_ORIGEM_LOTE]
        if invalidos:
            raise ConflictError(
                f"{len(invalidos)} equipamento(s) não estão em pré-triagem ou pré-venda "
                "e não podem ser transferidos."
            )

        por_id = {e.id: e for e in equips}
        novo_endereco_id = None if status_destino is StatusEquipamento.VENDA else destino_id
        for equip_id in ids:
            equip = por_id[equip_id]
            aplicar_movimento(equip, status_destino, TIPO_TRANSFERENCIA_LOTE, novo_endereco_id, observacao)
            if status_destino is StatusEquipamento.AG_TRIAGEM:
                abrir_reparo_se_necessario(equip.id, observacao)
            resultados.append({"equipamento_id": equip.id, "status_novo": status_destino.value})

    logger.info("Lote de %d equipamento(s) transferido para %s", len(resultados), status_destino.value)
    return resultados


# ------------------------- internalização -------------------------
def aprovar_internalizacao(equipamento_id: int, dados: dict) -> EquipamentoFisico:
    caixa_id = to_int(dados.get("caixa_id"), "caixa_id")
    if not caixa_id:
        raise ValidationError('"caixa_id" é obrigatório para aprovar a internalização.')

    filial = current_app.config["ALOCACAO_FILIAL_INTERNALIZACAO"]

    with transacao():
        equip = buscar(equipamento_id, for_update=True)
        if equip.status != StatusEquipamento.AG_INTERNALIZACAO.value:
            raise ConflictError("Equipamento não está aguardando internalização.")

        caixa = enderecos.buscar_ativo(caixa_id, "Caixa não encontrada.")
        if caixa.nivel != NivelEndereco.CAIXA.value:
            raise ValidationError('"caixa_id" deve referenciar um endereço do nível "caixa".')

        equip.alocacao_filial = filial
        aplicar_movimento(
            equip,
            StatusEquipamento.REPOSICAO,
            "movimentacao",
            caixa.id,
            f"Internalização aprovada pelo administrador. Filial alterada para {filial}.",
        )

    logger.info("Internalização aprovada: equipamento %s na caixa %s", equip.id, caixa_id)
    return equip
