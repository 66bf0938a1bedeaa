from flask import request

from pioerp.models.status import NivelEndereco
from pioerp.services import enderecos
from pioerp.utils import dados_json, resposta

from . import endereco_bp


# ------------------------- endereços -------------------------
@endereco_bp.get("/endereco")
def listar():
    rows = enderecos.listar(nivel=request.args.get("nivel"), ativo=request.args.get("ativo"))
    return resposta([e.to_dict() for e in rows])


@endereco_bp.get("/endereco/arvore")
def arvore():
    return resposta(enderecos.arvore())


@endereco_bp.post("/endereco")
def criar():
    end = enderecos.criar(dados_json())
    return resposta(end.to_dict(), status=201)


@endereco_bp.put("/endereco/<int:endereco_id>")
def atualizar(endereco_id):
    end = enderecos.atualizar(endereco_id, dados_json())
    return resposta(end.to_dict())


@endereco_bp.delete("/endereco/<int:endereco_id>")
def desativar(endereco_id):
    end = enderecos.desativar(endereco_id)
    return resposta(end.to_dict(), message="Endereço desativado.")


# ------------------------- pallets -------------------------
def _pallet(p):
    return {
        "id": p.id,
        "codigo": p.codigo,
        "endereco_id": p.parent_id,
        "endereco_codigo": p.parent.codigo if p.parent else None,
        "created_at": p.to_dict()["created_at"],
    }


@endereco_bp.get("/pallets")
def listar_pallets():
    rows = enderecos.listar_por_nivel(NivelEndereco.PALLET, request.args.get("endereco_id"))
    return resposta([_pallet(p) for p in rows])


@endereco_bp.post("/pallets")
def criar_pallet():
    pallet = enderecos.criar_pallet(dados_json())
    return resposta(_pallet(pallet), status=201)


# ------------------------- caixas -------------------------
def _caixa(c):
    return {
        "id": c.id,
        "codigo": c.codigo,
        "pallet_id": c.parent_id,
        "pallet_codigo": c.parent.codigo if c.parent else None,
        "created_at": c.to_dict()["created_at"],
    }


@endereco_bp.get("/caixas")
def listar_caixas():
    rows = enderecos.listar_por_nivel(NivelEndereco.CAIXA, request.args.get("pallet_id"))
    return resposta([_caixa(c) for c in rows])


@endereco_bp.post("/caixas")
def criar_caixa():
    caixa = enderecos.criar_caixa(dados_json())
    return resposta(_caixa(caixa), status=201)
