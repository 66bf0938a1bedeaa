from flask import request

from pioerp.services import consultas, equipamentos
from pioerp.utils import dados_json, resposta

from . import equipamento_bp


@equipamento_bp.get("")
def listar():
    rows = consultas.listar_equipamentos(
        status=request.args.get("status"),
        item_catalogo_id=request.args.get("item_catalogo_id") or request.args.get("catalogo_id"),
    )
    return resposta(rows, total=len(rows))


# /entrada e /montar-pallet antes de /<id>
@equipamento_bp.post("/entrada")
def entrada():
    equip = equipamentos.registrar_entrada(dados_json())
    return resposta(equip.to_dict(), message="Equipamento registrado com sucesso.", status=201)


@equipamento_bp.post("/montar-pallet")
def montar_pallet():
    resultados = equipamentos.montar_pallet(dados_json())
    destino = resultados[0]["status_novo"]
    label = "Ag. Triagem" if destino == "ag_triagem" else "Venda"
    return resposta(resultados, message=f"{len(resultados)} equipamento(s) transferidos para {label}.")


@equipamento_bp.get("/<int:equipamento_id>")
def obter(equipamento_id):
    return resposta(consultas.equipamento(equipamento_id))


@equipamento_bp.post("/<int:equipamento_id>/saida")
def saida(equipamento_id):
    resultado = equipamentos.transicionar(equipamento_id, dados_json())
    message = resultado.pop("message")
    return resposta(resultado, message=message)
