from pioerp.extensions import db
from pioerp.utils import agora, iso, minutos_entre


class Reparo(db.Model):
    __tablename__ = "reparo"
    __table_args__ = (
        # no máximo um reparo não finalizado por equipamento
        db.Index(
            "uq_reparo_ativo_por_equipamento",
            "equipamento_id",
            unique=True,
            postgresql_where=db.text("status != 'finalizado'"),
            sqlite_where=db.text("status != 'finalizado'"),
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    equipamento_id = db.Column(db.Integer, db.ForeignKey("equipamento_fisico.id"), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="aguardando")  # aguardando | em_progresso | pausado | finalizado

    descricao_problema = db.Column(db.Text)
    diagnostico = db.Column(db.Text)
    observacoes_finais = db.Column(db.Text)

    total_minutos_trabalhados = db.Column(db.Integer, nullable=False, default=0)
    iniciado_em = db.Column(db.DateTime)
    finalizado_em = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=agora)

    equipamento = db.relationship("EquipamentoFisico")
    sessoes = db.relationship(
        "SessaoReparo", back_populates="reparo", order_by="SessaoReparo.inicio", cascade="all, delete-orphan"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "equipamento_id": self.equipamento_id,
            "status": self.status,
            "descricao_problema": self.descricao_problema,
            "diagnostico": self.diagnostico,
            "observacoes_finais": self.observacoes_finais,
            "total_minutos_trabalhados": self.total_minutos_trabalhados,
            "iniciado_em": iso(self.iniciado_em),
            "finalizado_em": iso(self.finalizado_em),
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<Reparo {self.id} {self.status}>"


class SessaoReparo(db.Model):
    __tablename__ = "sessao_reparo"
    __table_args__ = (
        # no máximo uma sessão aberta por reparo
        db.Index(
            "uq_sessao_aberta_por_reparo",
            "reparo_id",
            unique=True,
            postgresql_where=db.text("fim IS NULL"),
            sqlite_where=db.text("fim IS NULL"),
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    reparo_id = db.Column(db.Integer, db.ForeignKey("reparo.id"), nullable=False)
    inicio = db.Column(db.DateTime, nullable=False)
    fim = db.Column(db.DateTime)

    reparo = db.relationship("Reparo", back_populates="sessoes")

    @property
    def minutos(self) -> int | None:
        if self.fim is None:
            return None
        return minutos_entre(self.inicio, self.fim)

    def to_dict(self):
        return {
            "id": self.id,
            "inicio": iso(self.inicio),
            "fim": iso(self.fim),
            "minutos": self.minutos,
        }

    def __repr__(self):
        return f"<SessaoReparo {self.id} reparo={self.reparo_id}>"
