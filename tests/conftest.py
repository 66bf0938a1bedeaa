from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from pioerp import create_app, utils
from pioerp.config import TestConfig
from pioerp.extensions import db
from pioerp.models import Endereco, EquipamentoFisico
from pioerp.services import catalogo, enderecos, equipamentos


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


class Relogio:
    """Substitui ``utils.agora`` com um horário controlado pelo teste."""

    def __init__(self, inicio: datetime):
        self.atual = inicio

    def __call__(self) -> datetime:
        return self.atual

    def avancar(self, segundos: int):
        self.atual += timedelta(seconds=segundos)


@pytest.fixture
def relogio(monkeypatch):
    r = Relogio(datetime(2025, 3, 10, 8, 0, 0))
    monkeypatch.setattr(utils, "agora", r)
    return r


class Fabrica:
    def __init__(self):
        self._seq = 0

    def _proximo(self) -> int:
        self._seq += 1
        return self._seq

    def item(self, nome=None, minimo=2, maximo=10, categoria="Notebook", **extra):
        dados = {
            "nome": nome or f"Modelo {self._proximo()}",
            "categoria": categoria,
            "estoque_minimo": minimo,
            "estoque_maximo": maximo,
        }
        dados.update(extra)
        return catalogo.criar(dados)

    def porta_pallet(self, codigo="PP01", sessoes=2):
        return enderecos.montar_porta_pallet(codigo, sessoes=sessoes)

    def sessao(self, codigo="PP01.S01"):
        sessao = db.session.scalars(select(Endereco).where(Endereco.codigo == codigo)).first()
        if sessao is None:
            self.porta_pallet(codigo.split(".")[0])
            sessao = db.session.scalars(select(Endereco).where(Endereco.codigo == codigo)).first()
        return sessao

    def pallet(self, codigo=None, sessao=None):
        sessao = sessao or self.sessao()
        return enderecos.criar_pallet({"codigo": codigo or f"PL{self._proximo():02d}", "endereco_id": sessao.id})

    def caixa(self, codigo=None, pallet=None):
        pallet = pallet or self.pallet()
        return enderecos.criar_caixa({"codigo": codigo or f"CX{self._proximo():03d}", "pallet_id": pallet.id})

    def equipamento(self, item, endereco, tipo_entrada="entrada_compra", status=None, **extra):
        n = self._proximo()
        dados = {
            "item_catalogo_id": item.id,
            "numero_serie": f"SN{n:04d}",
            "imobilizado": f"PAT{n:04d}",
            "endereco_id": endereco.id,
            "tipo_entrada": tipo_entrada,
        }
        dados.update(extra)
        equip = equipamentos.registrar_entrada(dados)
        if status is not None:
            # atalho de preparação: grava o status direto, sem histórico
            equip.status = status
            if status in ("em_uso", "venda"):
                equip.endereco_id = None
            db.session.commit()
        return equip


@pytest.fixture
def fabrica(app):
    return Fabrica()


def contar(model, *criterios) -> int:
    stmt = select(func.count()).select_from(model)
    if criterios:
        stmt = stmt.where(*criterios)
    return db.session.scalar(stmt)


def recarregar(equip_id) -> EquipamentoFisico:
    db.session.expire_all()
    return db.session.get(EquipamentoFisico, equip_id)
