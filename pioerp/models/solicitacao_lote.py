from pioerp.extensions import db
from pioerp.utils import agora, iso


class SolicitacaoLote(db.Model):
    """Pedido do técnico para o almoxarife descer um pallet de um modelo crítico."""

    __tablename__ = "solicitacao_lote"
    __table_args__ = (
        db.Index(
            "uq_solicitacao_ativa_por_item",
            "item_catalogo_id",
            unique=True,
            postgresql_where=db.text("status IN ('pendente', 'em_andamento')"),
            sqlite_where=db.text("status IN ('pendente', 'em_andamento')"),
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    item_catalogo_id = db.Column(db.Integer, db.ForeignKey("item_catalogo.id"), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pendente")  # pendente | em_andamento | atendida | cancelada
    observacao = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=agora)
    atendida_em = db.Column(db.DateTime)

    item_catalogo = db.relationship("ItemCatalogo")

    def to_dict(self):
        return {
            "id": self.id,
            "item_catalogo_id": self.item_catalogo_id,
            "status": self.status,
            "observacao": self.observacao,
            "created_at": iso(self.created_at),
            "atendida_em": iso(self.atendida_em),
        }

    def __repr__(self):
        return f"<SolicitacaoLote {self.id} {self.status}>"
