import logging

from sqlalchemy import select

from pioerp import utils
from pioerp.errors import ConflictError, NotFoundError, ValidationError
from pioerp.extensions import db, transacao
from pioerp.models import SolicitacaoLote
from pioerp.models.status import STATUS_SOLICITACAO_ATIVOS, StatusSolicitacao, valores
from pioerp.services import catalogo
from pioerp.utils import texto, to_int

logger = logging.getLogger(__name__)


def _status(v) -> StatusSolicitacao:
    try:
        return StatusSolicitacao(v)
    except ValueError:
        raise ValidationError(f"Status inválido. Aceitos: {', '.join(valores(StatusSolicitacao))}")


def solicitacao_ativa(item_catalogo_id, ignorar_id=None) -> SolicitacaoLote | None:
    stmt = select(SolicitacaoLote).where(
        SolicitacaoLote.item_catalogo_id == item_catalogo_id,
        SolicitacaoLote.status.in_(sorted(STATUS_SOLICITACAO_ATIVOS)),
    )
    if ignorar_id:
        stmt = stmt.where(SolicitacaoLote.id != ignorar_id)
    return db.session.scalars(stmt.limit(1)).first()


def criar(dados: dict) -> SolicitacaoLote:
    item_catalogo_id = to_int(dados.get("item_catalogo_id"), "item_catalogo_id", obrigatorio=True)

    with transacao():
        item = catalogo.buscar_ativo(item_catalogo_id)
        if solicitacao_ativa(item.id):
            raise ConflictError("Já existe uma solicitação ativa para este modelo.")

        sol = SolicitacaoLote(
            item_catalogo_id=item.id,
            status=StatusSolicitacao.PENDENTE.value,
            observacao=texto(dados.get("observacao")),
        )
        db.session.add(sol)

    logger.info("Solicitação de lote %s aberta para %s", sol.id, item.nome)
    return sol


def atualizar_status(solicitacao_id, dados: dict) -> SolicitacaoLote:
    if not dados.get("status"):
        raise ValidationError('"status" é obrigatório.')
    novo = _status(dados.get("status"))

    with transacao():
        sol = db.session.get(SolicitacaoLote, solicitacao_id)
        if not sol:
            raise NotFoundError("Solicitação não encontrada.")

        if novo.value in STATUS_SOLICITACAO_ATIVOS and solicitacao_ativa(sol.item_catalogo_id, ignorar_id=sol.id):
            raise ConflictError("Já existe uma solicitação ativa para este modelo.")

        if novo is StatusSolicitacao.ATENDIDA and sol.status != StatusSolicitacao.ATENDIDA.value:
            sol.atendida_em = utils.agora()
        sol.status = novo.value
        if "observacao" in dados:
            sol.observacao = texto(dados.get("observacao"))

    logger.info("Solicitação %s -> %s", sol.id, novo.value)
    return sol


MENSAGENS_STATUS = {
    StatusSolicitacao.PENDENTE.value: "Solicitação reaberta.",
    StatusSolicitacao.EM_ANDAMENTO.value: "Solicitação em andamento.",
    StatusSolicitacao.ATENDIDA.value: "Solicitação atendida.",
    StatusSolicitacao.CANCELADA.value: "Solicitação cancelada.",
}
