from pioerp.extensions import db
from pioerp.utils import agora, iso


class HistoricoMovimentacao(db.Model):
    """Registro de auditoria. Só recebe INSERT."""

    __tablename__ = "historico_movimentacao"

    id = db.Column(db.Integer, primary_key=True)
    equipamento_id = db.Column(db.Integer, db.ForeignKey("equipamento_fisico.id"), nullable=False, index=True)
    tipo = db.Column(db.String(40), nullable=False)
    status_anterior = db.Column(db.String(30))
    status_novo = db.Column(db.String(30), nullable=False)
    endereco_origem_id = db.Column(db.Integer, db.ForeignKey("endereco_fisico.id"), nullable=True)
    endereco_destino_id = db.Column(db.Integer, db.ForeignKey("endereco_fisico.id"), nullable=True)
    observacao = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=agora, index=True)

    equipamento = db.relationship("EquipamentoFisico", back_populates="historico")

    def to_dict(self):
        return {
            "id": self.id,
            "equipamento_id": self.equipamento_id,
            "tipo": self.tipo,
            "status_anterior": self.status_anterior,
            "status_novo": self.status_novo,
            "endereco_origem_id": self.endereco_origem_id,
            "endereco_destino_id": self.endereco_destino_id,
            "observacao": self.observacao,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<HistoricoMovimentacao {self.id} {self.tipo}>"
