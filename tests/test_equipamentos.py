"""Entrada de equipamentos e transições de status."""

from conftest import contar, recarregar

from pioerp.models import HistoricoMovimentacao, Reparo


def _entrada(client, item, caixa, **extra):
    dados = {
        "item_catalogo_id": item.id,
        "numero_serie": "SN001",
        "imobilizado": "PAT001",
        "endereco_id": caixa.id,
        "tipo_entrada": "entrada_compra",
    }
    dados.update(extra)
    return client.post("/api/equipamento/entrada", json=dados)


class TestEntrada:

    def test_entrada_de_compra_vai_para_reposicao(self, client, fabrica):
        item = fabrica.item(minimo=2, maximo=10)
        caixa = fabrica.caixa()

        resp = _entrada(client, item, caixa)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["data"]["status"] == "reposicao"
        assert body["data"]["endereco_id"] == caixa.id

        historico = HistoricoMovimentacao.query.filter_by(equipamento_id=body["data"]["id"]).all()
        assert len(historico) == 1
        assert historico[0].status_anterior is None
        assert historico[0].status_novo == "reposicao"
        assert historico[0].tipo == "entrada_compra"

    def test_recebimento_vai_para_pre_triagem(self, client, fabrica):
        resp = _entrada(client, fabrica.item(), fabrica.caixa(), tipo_entrada="entrada_recebimento")
        assert resp.get_json()["data"]["status"] == "pre_triagem"

    def test_aceita_caixa_id(self, client, fabrica):
        caixa = fabrica.caixa()
        resp = _entrada(client, fabrica.item(), caixa, endereco_id=None, caixa_id=caixa.id)
        assert resp.status_code == 201
        assert resp.get_json()["data"]["endereco_id"] == caixa.id

    def test_campos_obrigatorios(self, client, fabrica):
        item, caixa = fabrica.item(), fabrica.caixa()
        assert _entrada(client, item, caixa, numero_serie="").status_code == 400
        assert _entrada(client, item, caixa, imobilizado=None).status_code == 400
        assert _entrada(client, item, caixa, endereco_id=None).status_code == 400
        assert _entrada(client, item, caixa, tipo_entrada="doacao").status_code == 400

    def test_modelo_inativo(self, client, fabrica):
        item = fabrica.item()
        client.delete(f"/api/catalogo/{item.id}")
        assert _entrada(client, item, fabrica.caixa()).status_code == 404

    def test_endereco_inativo(self, client, fabrica):
        caixa = fabrica.caixa()
        client.delete(f"/api/endereco/{caixa.id}")
        resp = _entrada(client, fabrica.item(), caixa)
        assert resp.status_code == 404
        assert contar(HistoricoMovimentacao) == 0


class TestSaida:

    def test_triagem_abre_um_reparo_so(self, client, fabrica):
        equip = fabrica.equipamento(fabrica.item(), fabrica.caixa())

        resp = client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "ag_triagem"})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["status_novo"] == "ag_triagem"
        assert data["reparo"]["status"] == "aguardando"

        resp = client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "ag_triagem"})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["reparo"] is None
        assert contar(Reparo, Reparo.equipamento_id == equip.id) == 1

    def test_repetir_mesmo_destino_so_acrescenta_historico(self, client, fabrica):
        caixa = fabrica.caixa()
        equip = fabrica.equipamento(fabrica.item(), caixa)
        client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "ag_triagem"})
        antes = contar(HistoricoMovimentacao, HistoricoMovimentacao.equipamento_id == equip.id)

        resp = client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "ag_triagem"})
        assert resp.status_code == 200

        depois = contar(HistoricoMovimentacao, HistoricoMovimentacao.equipamento_id == equip.id)
        assert depois == antes + 1
        equip = recarregar(equip.id)
        assert (equip.status, equip.endereco_id) == ("ag_triagem", caixa.id)
        ultimo = equip.historico[-1]
        assert (ultimo.status_anterior, ultimo.status_novo) == ("ag_triagem", "ag_triagem")

    def test_saida_para_uso_limpa_endereco(self, client, fabrica):
        equip = fabrica.equipamento(fabrica.item(), fabrica.caixa())
        resp = client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "saida_uso"})
        assert resp.get_json()["data"]["status_novo"] == "em_uso"

        equip = recarregar(equip.id)
        assert equip.status == "em_uso"
        assert equip.endereco_id is None

        ultimo = equip.historico[-1]
        assert ultimo.tipo == "saida_uso"
        assert ultimo.status_anterior == "reposicao"
        assert ultimo.endereco_destino_id is None

    def test_venda_limpa_endereco(self, client, fabrica):
        equip = fabrica.equipamento(fabrica.item(), fabrica.caixa())
        client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "venda"})
        equip = recarregar(equip.id)
        assert (equip.status, equip.endereco_id) == ("venda", None)

    def test_move_para_outro_endereco(self, client, fabrica):
        origem, destino = fabrica.caixa(), fabrica.caixa()
        equip = fabrica.equipamento(fabrica.item(), origem, tipo_entrada="entrada_recebimento")
        resp = client.post(f"/api/equipamento/{equip.id}/saida", json={
            "status_destino": "pre_venda", "endereco_destino_id": destino.id,
        })
        assert resp.status_code == 200

        equip = recarregar(equip.id)
        assert equip.status == "pre_venda"
        assert equip.endereco_id == destino.id
        assert equip.historico[-1].endereco_origem_id == origem.id

    def test_sem_destino_mantem_endereco(self, client, fabrica):
        caixa = fabrica.caixa()
        equip = fabrica.equipamento(fabrica.item(), caixa, tipo_entrada="entrada_recebimento")
        client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "reposicao"})
        assert recarregar(equip.id).endereco_id == caixa.id

    def test_destino_invalido(self, client, fabrica):
        equip = fabrica.equipamento(fabrica.item(), fabrica.caixa())
        resp = client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "sucata"})
        assert resp.status_code == 400
        assert recarregar(equip.id).status == "reposicao"

    def test_destino_obrigatorio(self, client, fabrica):
        equip = fabrica.equipamento(fabrica.item(), fabrica.caixa())
        assert client.post(f"/api/equipamento/{equip.id}/saida", json={}).status_code == 400

    def test_endereco_destino_inativo(self, client, fabrica):
        equip = fabrica.equipamento(fabrica.item(), fabrica.caixa())
        destino = fabrica.caixa()
        client.delete(f"/api/endereco/{destino.id}")
        resp = client.post(f"/api/equipamento/{equip.id}/saida", json={
            "status_destino": "pre_venda", "endereco_destino_id": destino.id,
        })
        assert resp.status_code == 404
        assert recarregar(equip.id).status == "reposicao"

    def test_equipamento_inexistente(self, client):
        resp = client.post("/api/equipamento/999/saida", json={"status_destino": "venda"})
        assert resp.status_code == 404


class TestConsulta:

    def test_detalhe_com_localizacao_completa(self, client, fabrica):
        caixa = fabrica.caixa("CX-A")
        equip = fabrica.equipamento(fabrica.item(nome="Notebook X1"), caixa)
        data = client.get(f"/api/equipamento/{equip.id}").get_json()["data"]
        assert data["modelo"] == "Notebook X1"
        assert data["caixa_codigo"] == "CX-A"
        assert data["pallet_codigo"] == caixa.parent.codigo
        assert data["sessao_codigo"] == "PP01.S01"
        assert data["porta_pallet_codigo"] == "PP01"

    def test_listagem_filtrada_por_status(self, client, fabrica):
        item, caixa = fabrica.item(), fabrica.caixa()
        fabrica.equipamento(item, caixa)
        fabrica.equipamento(item, caixa, tipo_entrada="entrada_recebimento")
        body = client.get("/api/equipamento?status=pre_triagem").get_json()
        assert body["total"] == 1
        assert body["data"][0]["status"] == "pre_triagem"

    def test_status_invalido_na_listagem(self, client):
        assert client.get("/api/equipamento?status=xyz").status_code == 400

    def test_inexistente(self, client):
        assert client.get("/api/equipamento/999").status_code == 404
