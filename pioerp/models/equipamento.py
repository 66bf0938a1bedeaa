from pioerp.extensions import db
from pioerp.utils import agora, iso


class EquipamentoFisico(db.Model):
    __tablename__ = "equipamento_fisico"

    id = db.Column(db.Integer, primary_key=True)
    item_catalogo_id = db.Column(db.Integer, db.ForeignKey("item_catalogo.id"), nullable=False)
    numero_serie = db.Column(db.String(120), nullable=False, index=True)
    imobilizado = db.Column(db.String(60), nullable=False)
    status = db.Column(db.String(30), nullable=False, index=True)

    # NULL = fora do armazém (em uso ou vendido)
    endereco_id = db.Column(db.Integer, db.ForeignKey("endereco_fisico.id"), nullable=True)

    observacoes = db.Column(db.Text)
    alocacao_filial = db.Column(db.String(20))

    created_at = db.Column(db.DateTime, default=agora)
    updated_at = db.Column(db.DateTime, default=agora, onupdate=agora)

    item_catalogo = db.relationship("ItemCatalogo", back_populates="equipamentos")
    endereco = db.relationship("Endereco")
    historico = db.relationship(
        "HistoricoMovimentacao", back_populates="equipamento", order_by="HistoricoMovimentacao.id"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "item_catalogo_id": self.item_catalogo_id,
            "numero_serie": self.numero_serie,
            "imobilizado": self.imobilizado,
            "status": self.status,
            "endereco_id": self.endereco_id,
            "observacoes": self.observacoes,
            "alocacao_filial": self.alocacao_filial,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<EquipamentoFisico {self.numero_serie} {self.status}>"
