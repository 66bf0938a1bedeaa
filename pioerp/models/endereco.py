from pioerp.extensions import db
from pioerp.utils import agora, iso


class Endereco(db.Model):
    __tablename__ = "endereco_fisico"

    id = db.Column(db.Integer, primary_key=True)
    codigo = db.Column(db.String(60), nullable=False, unique=True)
    descricao = db.Column(db.String(200))
    nivel = db.Column(db.String(20), nullable=False)  # porta_pallet | sessao | pallet | caixa
    parent_id = db.Column(db.Integer, db.ForeignKey("endereco_fisico.id"), nullable=True)
    ativo = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=agora)

    parent = db.relationship("Endereco", remote_side=[id], backref="filhos")

    def to_dict(self):
        return {
            "id": self.id,
            "codigo": self.codigo,
            "descricao": self.descricao,
            "nivel": self.nivel,
            "parent_id": self.parent_id,
            "parent_codigo": self.parent.codigo if self.parent else None,
            "parent_nivel": self.parent.nivel if self.parent else None,
            "ativo": self.ativo,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<Endereco {self.codigo} ({self.nivel})>"
