"""Fluxo de reparo: aguardando -> em_progresso <-> pausado -> finalizado.

O tempo trabalhado é contado por sessões. Cada sessão fechada soma
``floor(segundos / 60)`` minutos ao total do reparo; a sessão aberta só
entra no total quando é fechada (pausa ou finalização).
"""
import logging
from enum import Enum
from types import MappingProxyType
from typing import NamedTuple

from sqlalchemy import select, update

from pioerp import utils
from pioerp.errors import ConflictError, NotFoundError, ValidationError
from pioerp.extensions import db, transacao
from pioerp.models import Reparo, SessaoReparo
from pioerp.models.status import StatusEquipamento, StatusReparo
from pioerp.services import enderecos, equipamentos
from pioerp.utils import texto, to_int

logger = logging.getLogger(__name__)


class DestinoReparo(str, Enum):
    REPOSICAO = "reposicao"
    AG_INTERNALIZACAO = "ag_internalizacao"
    PRE_VENDA = "pre_venda"
    VENDA = "venda"


class Encaminhamento(NamedTuple):
    novo_status: StatusEquipamento
    mantem_endereco: bool


ENCAMINHAMENTOS = MappingProxyType({
    DestinoReparo.REPOSICAO: Encaminhamento(StatusEquipamento.REPOSICAO, True),
    DestinoReparo.AG_INTERNALIZACAO: Encaminhamento(StatusEquipamento.AG_INTERNALIZACAO, True),
    DestinoReparo.PRE_VENDA: Encaminhamento(StatusEquipamento.PRE_VENDA, True),
    DestinoReparo.VENDA: Encaminhamento(StatusEquipamento.VENDA, False),
})


def _buscar(reparo_id, for_update=False) -> Reparo:
    stmt = select(Reparo).where(Reparo.id == reparo_id)
    if for_update:
        # relê o estado atual dentro da transação
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    rep = db.session.scalars(stmt).first()
    if not rep:
        raise NotFoundError("Reparo não encontrado.")
    return rep


def _sessao_aberta(reparo_id) -> SessaoReparo | None:
    return db.session.scalars(
        select(SessaoReparo).where(SessaoReparo.reparo_id == reparo_id, SessaoReparo.fim.is_(None))
    ).first()


def _fechar_sessao(reparo_id, fim) -> int:
    """Fecha a sessão aberta (se houver) e devolve os minutos dela."""
    sessao = _sessao_aberta(reparo_id)
    if sessao is None:
        return 0
    sessao.fim = fim
    return utils.minutos_entre(sessao.inicio, fim)


def obter(reparo_id) -> dict:
    rep = _buscar(reparo_id)
    equip = rep.equipamento
    data = rep.to_dict()
    data.update({
        "numero_serie": equip.numero_serie,
        "imobilizado": equip.imobilizado,
        "status_equip": equip.status,
        "endereco_id": equip.endereco_id,
        "endereco_codigo": equip.endereco.codigo if equip.endereco else None,
        "modelo": equip.item_catalogo.nome,
        "categoria": equip.item_catalogo.categoria,
        "sessoes": [s.to_dict() for s in rep.sessoes],
        "tempo_decorrido_segundos": tempo_decorrido_segundos(rep),
    })
    return data


def tempo_decorrido_segundos(rep: Reparo, agora=None) -> int:
    """Valor de exibição: total acumulado mais a sessão aberta, ao vivo."""
    total = rep.total_minutos_trabalhados * 60
    if rep.status != StatusReparo.EM_PROGRESSO.value:
        return total
    aberta = next((s for s in rep.sessoes if s.fim is None), None)
    if aberta is None:
        return total
    agora = agora or utils.agora()
    return total + max(0, int((agora - aberta.inicio).total_seconds()))


def atualizar(reparo_id, dados: dict) -> Reparo:
    with transacao():
        rep = _buscar(reparo_id)
        for campo in ("descricao_problema", "diagnostico", "observacoes_finais"):
            if dados.get(campo) is not None:
                setattr(rep, campo, texto(dados[campo]))
    return rep


def iniciar(reparo_id) -> dict:
    with transacao():
        rep = _buscar(reparo_id, for_update=True)
        if rep.status == StatusReparo.FINALIZADO.value:
            raise ConflictError("Este reparo já foi finalizado.")
        if rep.status == StatusReparo.EM_PROGRESSO.value:
            raise ConflictError("Reparo já está em progresso.")

        retomando = rep.status == StatusReparo.PAUSADO.value
        agora = utils.agora()

        # sessão esquecida aberta é fechada sem somar minutos
        db.session.execute(
            update(SessaoReparo)
            .where(SessaoReparo.reparo_id == rep.id, SessaoReparo.fim.is_(None))
            .values(fim=agora)
        )
        sessao = SessaoReparo(reparo_id=rep.id, inicio=agora)
        db.session.add(sessao)

        rep.status = StatusReparo.EM_PROGRESSO.value
        if rep.iniciado_em is None:
            rep.iniciado_em = agora
        db.session.flush()

    logger.info("Reparo %s %s", rep.id, "retomado" if retomando else "iniciado")
    return {
        "message": "Reparo retomado." if retomando else "Reparo iniciado.",
        "reparo": rep.to_dict(),
        "sessao": sessao.to_dict(),
    }


def pausar(reparo_id) -> dict:
    with transacao():
        rep = _buscar(reparo_id, for_update=True)
        if rep.status != StatusReparo.EM_PROGRESSO.value:
            raise ConflictError("Só é possível pausar um reparo em andamento.")

        minutos = _fechar_sessao(rep.id, utils.agora())
        rep.total_minutos_trabalhados += minutos
        rep.status = StatusReparo.PAUSADO.value

    logger.info("Reparo %s pausado (+%d min)", rep.id, minutos)
    return {
        "message": f"Reparo pausado. +{minutos} minutos registrados.",
        "reparo": rep.to_dict(),
        "minutos_sessao": minutos,
    }


def finalizar(reparo_id, dados: dict) -> dict:
    try:
        destino = DestinoReparo(dados.get("status_destino") or DestinoReparo.REPOSICAO.value)
    except ValueError:
        raise ValidationError(
            f'"status_destino" inválido. Aceitos: {", ".join(d.value for d in DestinoReparo)}'
        )
    encaminhamento = ENCAMINHAMENTOS[destino]
    caixa_destino_id = to_int(dados.get("caixa_destino_id") or dados.get("endereco_destino_id"), "caixa_destino_id")
    diagnostico = texto(dados.get("diagnostico"))
    observacoes_finais = texto(dados.get("observacoes_finais"))

    with transacao():
        rep = _buscar(reparo_id, for_update=True)
        if rep.status == StatusReparo.FINALIZADO.value:
            raise ConflictError("Este reparo já foi finalizado.")

        agora = utils.agora()
        minutos = 0
        if rep.status == StatusReparo.EM_PROGRESSO.value:
            minutos = _fechar_sessao(rep.id, agora)
        total = rep.total_minutos_trabalhados + minutos

        rep.status = StatusReparo.FINALIZADO.value
        rep.finalizado_em = agora
        rep.total_minutos_trabalhados = total
        if diagnostico:
            rep.diagnostico = diagnostico
        if observacoes_finais:
            rep.observacoes_finais = observacoes_finais

        equip = equipamentos.buscar(rep.equipamento_id, for_update=True)
        if not encaminhamento.mantem_endereco:
            novo_endereco_id = None
        elif caixa_destino_id:
            novo_endereco_id = enderecos.buscar_ativo(caixa_destino_id).id
        else:
            novo_endereco_id = equip.endereco_id

        if destino is DestinoReparo.AG_INTERNALIZACAO and texto(dados.get("alocacao_filial")):
            equip.alocacao_filial = texto(dados.get("alocacao_filial"))

        nota = f"Reparo finalizado. Tempo: {total} min. Destino: {destino.value}."
        if observacoes_finais:
            nota = f"{nota} {observacoes_finais}"
        equipamentos.aplicar_movimento(equip, encaminhamento.novo_status, "movimentacao", novo_endereco_id, nota)

    logger.info("Reparo %s finalizado: %d min, destino %s", rep.id, total, destino.value)
    return {
        "message": f"Reparo finalizado. Tempo total: {total} minutos. Destino: {destino.value}",
        "reparo": rep.to_dict(),
        "total_minutos": total,
        "status_destino": destino.value,
    }
