from pioerp.extensions import db
from pioerp.utils import agora, iso


class ItemCatalogo(db.Model):
    __tablename__ = "item_catalogo"
    __table_args__ = (
        db.CheckConstraint("estoque_maximo >= estoque_minimo", name="ck_item_catalogo_estoque"),
    )

    id = db.Column(db.Integer, primary_key=True)
    codigo = db.Column(db.String(50), unique=True)
    nome = db.Column(db.String(200), nullable=False)
    categoria = db.Column(db.String(100), nullable=False)

    estoque_minimo = db.Column(db.Integer, nullable=False, default=0)
    estoque_maximo = db.Column(db.Integer, nullable=False, default=0)

    ativo = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=agora)

    equipamentos = db.relationship("EquipamentoFisico", back_populates="item_catalogo")

    def to_dict(self):
        return {
            "id": self.id,
            "codigo": self.codigo,
            "nome": self.nome,
            "categoria": self.categoria,
            "estoque_minimo": self.estoque_minimo,
            "estoque_maximo": self.estoque_maximo,
            "ativo": self.ativo,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<ItemCatalogo {self.nome}>"
