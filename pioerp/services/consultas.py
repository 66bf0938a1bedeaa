"""Consultas de leitura: snapshot de estoque, críticos, fila de reparo,
histórico e dashboard.

As contagens por modelo saem de um único agregado agrupado por
``item_catalogo_id``; a existência de solicitação ativa é uma subconsulta
escalar. Assim nenhum equipamento é contado duas vezes por causa de joins.
"""
from sqlalchemy import case, func, select
from sqlalchemy.orm import aliased

from pioerp.errors import NotFoundError, ValidationError
from pioerp.extensions import db
from pioerp.models import (
    Endereco,
    EquipamentoFisico,
    HistoricoMovimentacao,
    ItemCatalogo,
    Reparo,
    SolicitacaoLote,
)
from pioerp.models.status import (
    STATUS_SOLICITACAO_ATIVOS,
    NivelEndereco,
    StatusEquipamento,
    StatusReparo,
    StatusSolicitacao,
    valores,
)
from pioerp.utils import iso, to_int

_CONTADOS = (
    StatusEquipamento.REPOSICAO,
    StatusEquipamento.AG_TRIAGEM,
    StatusEquipamento.PRE_TRIAGEM,
    StatusEquipamento.PRE_VENDA,
    StatusEquipamento.AG_INTERNALIZACAO,
    StatusEquipamento.EM_USO,
    StatusEquipamento.VENDA,
)


# ------------------------- estoque por catálogo -------------------------
def _contagens():
    def qtd(status):
        return func.sum(case((EquipamentoFisico.status == status.value, 1), else_=0))

    no_armazem = func.sum(case((EquipamentoFisico.endereco_id.is_not(None), 1), else_=0))
    return (
        select(
            EquipamentoFisico.item_catalogo_id.label("item_catalogo_id"),
            *[qtd(s).label(f"qtd_{s.value}") for s in _CONTADOS],
            no_armazem.label("qtd_total"),
        )
        .group_by(EquipamentoFisico.item_catalogo_id)
        .subquery("contagens")
    )


def _metricas(c):
    """Colunas derivadas do agregado; coalesce para modelos sem equipamento."""
    cols = {f"qtd_{s.value}": func.coalesce(getattr(c.c, f"qtd_{s.value}"), 0) for s in _CONTADOS}
    cols["qtd_total"] = func.coalesce(c.c.qtd_total, 0)
    reposicao = cols["qtd_reposicao"]
    cols["deficit"] = case(
        (ItemCatalogo.estoque_minimo > reposicao, ItemCatalogo.estoque_minimo - reposicao), else_=0
    )
    cols["estoque_critico"] = case((reposicao < ItemCatalogo.estoque_minimo, True), else_=False)
    return cols


def _solicitacao_ativa_id():
    return (
        select(SolicitacaoLote.id)
        .where(
            SolicitacaoLote.item_catalogo_id == ItemCatalogo.id,
            SolicitacaoLote.status.in_(sorted(STATUS_SOLICITACAO_ATIVOS)),
        )
        .limit(1)
        .scalar_subquery()
    )


def _estoque_stmt():
    c = _contagens()
    m = _metricas(c)
    stmt = (
        select(ItemCatalogo, *[expr.label(nome) for nome, expr in m.items()])
        .outerjoin(c, c.c.item_catalogo_id == ItemCatalogo.id)
    )
    return stmt, m


def _linha_estoque(row) -> dict:
    item = row[0]
    data = item.to_dict()
    for chave, valor in row._mapping.items():
        if chave.startswith("qtd_") or chave == "deficit":
            data[chave] = int(valor or 0)
    data["estoque_critico"] = bool(row._mapping["estoque_critico"])
    return data


def estoque_por_catalogo(item_catalogo_id=None) -> list[dict]:
    stmt, m = _estoque_stmt()
    if item_catalogo_id is not None:
        stmt = stmt.where(ItemCatalogo.id == item_catalogo_id)
    stmt = stmt.order_by(m["estoque_critico"].desc(), ItemCatalogo.nome.asc())
    return [_linha_estoque(r) for r in db.session.execute(stmt).all()]


def item_catalogo(item_catalogo_id) -> dict:
    linhas = estoque_por_catalogo(item_catalogo_id)
    if not linhas:
        raise NotFoundError("Item de catálogo não encontrado.")
    return linhas[0]


def estoque_critico() -> list[dict]:
    stmt, m = _estoque_stmt()
    stmt = (
        stmt.where(ItemCatalogo.ativo.is_(True), m["qtd_reposicao"] < ItemCatalogo.estoque_minimo)
        .order_by(m["deficit"].desc(), ItemCatalogo.nome.asc())
    )
    return [_linha_estoque(r) for r in db.session.execute(stmt).all()]


def criticos_para_reparo() -> list[dict]:
    """Modelos abaixo do mínimo, com o que há em triagem e se já foi pedido lote."""
    stmt, m = _estoque_stmt()
    sol_id = _solicitacao_ativa_id()
    stmt = (
        stmt.add_columns(sol_id.label("solicitacao_ativa_id"))
        .where(ItemCatalogo.ativo.is_(True), m["qtd_reposicao"] < ItemCatalogo.estoque_minimo)
        .order_by(m["deficit"].desc(), ItemCatalogo.nome.asc())
    )
    linhas = []
    for r in db.session.execute(stmt).all():
        data = _linha_estoque(r)
        sol = r._mapping["solicitacao_ativa_id"]
        data.update({
            "item_catalogo_id": data["id"],
            "modelo": data["nome"],
            "solicitacao_ativa_id": sol,
            "tem_solicitacao_ativa": sol is not None,
        })
        linhas.append(data)
    return linhas


# ------------------------- localização -------------------------
def _cadeia_enderecos(stmt, coluna_endereco_id):
    """Junta o endereço e até três ancestrais (caixa > pallet > sessão > porta-pallet)."""
    nos = [aliased(Endereco, name=f"end{i}") for i in range(4)]
    stmt = stmt.outerjoin(nos[0], nos[0].id == coluna_endereco_id)
    for filho, pai in zip(nos, nos[1:]):
        stmt = stmt.outerjoin(pai, pai.id == filho.parent_id)
    for i, no in enumerate(nos):
        stmt = stmt.add_columns(no.id.label(f"end{i}_id"), no.codigo.label(f"end{i}_codigo"), no.nivel.label(f"end{i}_nivel"))
    return stmt


def _localizacao(mapping) -> dict:
    loc = {"endereco_codigo": mapping["end0_codigo"]}
    for nivel in NivelEndereco:
        loc[f"{nivel.value}_id"] = None
        loc[f"{nivel.value}_codigo"] = None
    for i in range(4):
        nivel = mapping[f"end{i}_nivel"]
        if nivel:
            loc[f"{nivel}_id"] = mapping[f"end{i}_id"]
            loc[f"{nivel}_codigo"] = mapping[f"end{i}_codigo"]
    return loc


# ------------------------- equipamentos -------------------------
def _equipamentos_stmt():
    stmt = (
        select(
            EquipamentoFisico,
            ItemCatalogo.nome.label("modelo"),
            ItemCatalogo.categoria.label("categoria"),
            ItemCatalogo.estoque_minimo.label("estoque_minimo"),
            ItemCatalogo.estoque_maximo.label("estoque_maximo"),
        )
        .join(ItemCatalogo, ItemCatalogo.id == EquipamentoFisico.item_catalogo_id)
    )
    return _cadeia_enderecos(stmt, EquipamentoFisico.endereco_id)


def _linha_equipamento(row) -> dict:
    mapping = row._mapping
    data = row[0].to_dict()
    data.update({
        "modelo": mapping["modelo"],
        "categoria": mapping["categoria"],
        "estoque_minimo": mapping["estoque_minimo"],
        "estoque_maximo": mapping["estoque_maximo"],
    })
    data.update(_localizacao(mapping))
    return data


def listar_equipamentos(status=None, item_catalogo_id=None) -> list[dict]:
    stmt = _equipamentos_stmt()
    if status:
        if status not in valores(StatusEquipamento):
            raise ValidationError(f"Status inválido. Aceitos: {', '.join(valores(StatusEquipamento))}")
        stmt = stmt.where(EquipamentoFisico.status == status)
    item_catalogo_id = to_int(item_catalogo_id, "item_catalogo_id")
    if item_catalogo_id:
        stmt = stmt.where(EquipamentoFisico.item_catalogo_id == item_catalogo_id)
    stmt = stmt.order_by(EquipamentoFisico.updated_at.desc(), EquipamentoFisico.id.desc())
    return [_linha_equipamento(r) for r in db.session.execute(stmt).all()]


def equipamento(equipamento_id) -> dict:
    row = db.session.execute(_equipamentos_stmt().where(EquipamentoFisico.id == equipamento_id)).first()
    if row is None:
        raise NotFoundError("Equipamento não encontrado.")
    return _linha_equipamento(row)


def aguardando_internalizacao() -> list[dict]:
    stmt = (
        _equipamentos_stmt()
        .where(EquipamentoFisico.status == StatusEquipamento.AG_INTERNALIZACAO.value)
        .order_by(EquipamentoFisico.updated_at.asc(), EquipamentoFisico.id.asc())
    )
    return [_linha_equipamento(r) for r in db.session.execute(stmt).all()]


def locais_por_modelo(item_catalogo_id) -> list[dict]:
    """Caixas que já guardam equipamentos desse modelo em reposição."""
    caixa = aliased(Endereco, name="cx")
    pallet = aliased(Endereco, name="pl")
    sessao = aliased(Endereco, name="ss")
    tem_modelo = (
        select(EquipamentoFisico.id)
        .where(
            EquipamentoFisico.endereco_id == caixa.id,
            EquipamentoFisico.item_catalogo_id == item_catalogo_id,
            EquipamentoFisico.status == StatusEquipamento.REPOSICAO.value,
        )
        .exists()
    )
    stmt = (
        select(caixa, pallet, sessao)
        .join(pallet, pallet.id == caixa.parent_id)
        .join(sessao, sessao.id == pallet.parent_id)
        .where(caixa.nivel == NivelEndereco.CAIXA.value, caixa.ativo.is_(True), tem_modelo)
        .order_by(sessao.codigo, pallet.codigo, caixa.codigo)
    )
    return [
        {
            "caixa_id": cx.id, "caixa_codigo": cx.codigo,
            "pallet_id": pl.id, "pallet_codigo": pl.codigo,
            "endereco_id": ss.id, "endereco_codigo": ss.codigo,
        }
        for cx, pl, ss in db.session.execute(stmt).all()
    ]


# ------------------------- reparo -------------------------
def prioridades_reparo() -> list[dict]:
    c = _contagens()
    m = _metricas(c)
    stmt = (
        select(
            Reparo,
            EquipamentoFisico,
            ItemCatalogo.nome.label("modelo"),
            ItemCatalogo.categoria.label("categoria"),
            ItemCatalogo.estoque_minimo.label("estoque_minimo"),
            m["qtd_reposicao"].label("qtd_reposicao"),
            m["deficit"].label("deficit"),
            m["estoque_critico"].label("critico"),
        )
        .join(EquipamentoFisico, EquipamentoFisico.id == Reparo.equipamento_id)
        .join(ItemCatalogo, ItemCatalogo.id == EquipamentoFisico.item_catalogo_id)
        .outerjoin(c, c.c.item_catalogo_id == ItemCatalogo.id)
        .where(Reparo.status != StatusReparo.FINALIZADO.value)
    )
    stmt = _cadeia_enderecos(stmt, EquipamentoFisico.endereco_id).order_by(
        m["estoque_critico"].desc(), m["deficit"].desc(), Reparo.created_at.asc(), Reparo.id.asc()
    )

    linhas = []
    for row in db.session.execute(stmt).all():
        rep, equip = row[0], row[1]
        mp = row._mapping
        data = {
            "reparo_id": rep.id,
            "status_reparo": rep.status,
            "total_minutos_trabalhados": rep.total_minutos_trabalhados,
            "descricao_problema": rep.descricao_problema,
            "iniciado_em": iso(rep.iniciado_em),
            "created_at": iso(rep.created_at),
            "equipamento_id": equip.id,
            "numero_serie": equip.numero_serie,
            "imobilizado": equip.imobilizado,
            "item_catalogo_id": equip.item_catalogo_id,
            "modelo": mp["modelo"],
            "categoria": mp["categoria"],
            "estoque_minimo": mp["estoque_minimo"],
            "qtd_reposicao": int(mp["qtd_reposicao"] or 0),
            "deficit": int(mp["deficit"] or 0),
            "critico": bool(mp["critico"]),
        }
        data.update(_localizacao(mp))
        linhas.append(data)
    return linhas


# ------------------------- solicitações -------------------------
_ORDEM_SOLICITACAO = case(
    {s.value: i for i, s in enumerate(StatusSolicitacao)},
    value=SolicitacaoLote.status,
)


def listar_solicitacoes(status=None) -> list[dict]:
    c = _contagens()
    m = _metricas(c)
    stmt = (
        select(
            SolicitacaoLote,
            ItemCatalogo.nome.label("modelo"),
            ItemCatalogo.categoria.label("categoria"),
            ItemCatalogo.estoque_minimo.label("estoque_minimo"),
            m["qtd_reposicao"].label("qtd_reposicao"),
            m["deficit"].label("deficit"),
        )
        .join(ItemCatalogo, ItemCatalogo.id == SolicitacaoLote.item_catalogo_id)
        .outerjoin(c, c.c.item_catalogo_id == ItemCatalogo.id)
    )
    if status:
        if status not in valores(StatusSolicitacao):
            raise ValidationError(f"Status inválido. Aceitos: {', '.join(valores(StatusSolicitacao))}")
        stmt = stmt.where(SolicitacaoLote.status == status)
    stmt = stmt.order_by(_ORDEM_SOLICITACAO, SolicitacaoLote.created_at.desc(), SolicitacaoLote.id.desc())

    linhas = []
    for row in db.session.execute(stmt).all():
        mp = row._mapping
        data = row[0].to_dict()
        data.update({
            "modelo": mp["modelo"],
            "categoria": mp["categoria"],
            "estoque_minimo": mp["estoque_minimo"],
            "qtd_reposicao": int(mp["qtd_reposicao"] or 0),
            "deficit": int(mp["deficit"] or 0),
        })
        linhas.append(data)
    return linhas


# ------------------------- histórico / dashboard -------------------------
def historico(equipamento_id=None, tipo=None, limit=100, offset=0, limite_maximo=500) -> list[dict]:
    limit = to_int(limit, "limit", minimo=1) or 100
    offset = to_int(offset, "offset", minimo=0) or 0
    origem = aliased(Endereco, name="origem")
    destino = aliased(Endereco, name="destino")

    stmt = (
        select(
            HistoricoMovimentacao,
            EquipamentoFisico.numero_serie,
            EquipamentoFisico.imobilizado,
            ItemCatalogo.nome.label("modelo"),
            origem.codigo.label("origem_codigo"),
            destino.codigo.label("destino_codigo"),
        )
        .join(EquipamentoFisico, EquipamentoFisico.id == HistoricoMovimentacao.equipamento_id)
        .join(ItemCatalogo, ItemCatalogo.id == EquipamentoFisico.item_catalogo_id)
        .outerjoin(origem, origem.id == HistoricoMovimentacao.endereco_origem_id)
        .outerjoin(destino, destino.id == HistoricoMovimentacao.endereco_destino_id)
    )
    equipamento_id = to_int(equipamento_id, "equipamento_id")
    if equipamento_id:
        stmt = stmt.where(HistoricoMovimentacao.equipamento_id == equipamento_id)
    if tipo:
        stmt = stmt.where(HistoricoMovimentacao.tipo == tipo)
    stmt = (
        stmt.order_by(HistoricoMovimentacao.created_at.desc(), HistoricoMovimentacao.id.desc())
        .limit(min(limit, limite_maximo))
        .offset(offset)
    )

    linhas = []
    for row in db.session.execute(stmt).all():
        mp = row._mapping
        data = row[0].to_dict()
        data.update({
            "numero_serie": mp["numero_serie"],
            "imobilizado": mp["imobilizado"],
            "modelo": mp["modelo"],
            "origem_codigo": mp["origem_codigo"],
            "destino_codigo": mp["destino_codigo"],
        })
        linhas.append(data)
    return linhas


def dashboard() -> dict:
    por_status = dict(
        db.session.execute(
            select(EquipamentoFisico.status, func.count(EquipamentoFisico.id)).group_by(EquipamentoFisico.status)
        ).all()
    )
    totais = {"total_equipamentos": sum(por_status.values())}
    for s in StatusEquipamento:
        totais[s.value] = por_status.get(s.value, 0)

    return {
        "totais": totais,
        "alertas_criticos": len(estoque_critico()),
        "movimentacoes_recentes": historico(limit=10),
    }
