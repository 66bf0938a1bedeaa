"""Cronômetro de reparo por sessões e encaminhamento na finalização."""

import pytest
from conftest import contar, recarregar

from pioerp.extensions import db
from pioerp.models import Reparo, SessaoReparo


@pytest.fixture
def reparo(client, fabrica):
    """Equipamento em triagem com reparo aguardando."""
    item = fabrica.item(minimo=3, maximo=10)
    caixa = fabrica.caixa()
    equip = fabrica.equipamento(item, caixa)
    resp = client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "ag_triagem"})
    rep = resp.get_json()["data"]["reparo"]
    return {"id": rep["id"], "equipamento_id": equip.id, "caixa": caixa, "item": item}


def _acao(client, reparo_id, acao, **json):
    return client.post(f"/api/reparo/{reparo_id}/{acao}", json=json or None)


class TestCronometro:

    def test_minutos_inteiros_por_sessao(self, client, reparo, relogio):
        rid = reparo["id"]
        assert _acao(client, rid, "iniciar").get_json()["message"] == "Reparo iniciado."

        relogio.avancar(90)
        resp = _acao(client, rid, "pausar")
        body = resp.get_json()
        assert body["data"]["minutos_sessao"] == 1
        assert body["data"]["reparo"]["total_minutos_trabalhados"] == 1
        assert body["message"] == "Reparo pausado. +1 minutos registrados."

        assert _acao(client, rid, "iniciar").get_json()["message"] == "Reparo retomado."
        relogio.avancar(130)
        resp = _acao(client, rid, "finalizar", status_destino="reposicao")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["total_minutos"] == 3
        assert recarregar(reparo["equipamento_id"]).status == "reposicao"

    def test_sessao_curta_nao_soma(self, client, reparo, relogio):
        _acao(client, reparo["id"], "iniciar")
        relogio.avancar(59)
        assert _acao(client, reparo["id"], "pausar").get_json()["data"]["minutos_sessao"] == 0

    def test_uma_sessao_aberta_por_vez(self, client, reparo, relogio):
        rid = reparo["id"]
        _acao(client, rid, "iniciar")
        relogio.avancar(120)
        _acao(client, rid, "pausar")
        _acao(client, rid, "iniciar")

        assert contar(SessaoReparo, SessaoReparo.reparo_id == rid) == 2
        assert contar(SessaoReparo, SessaoReparo.reparo_id == rid, SessaoReparo.fim.is_(None)) == 1

    def test_iniciar_fecha_sessao_esquecida(self, client, reparo, relogio):
        rid = reparo["id"]
        db.session.add(SessaoReparo(reparo_id=rid, inicio=relogio()))
        db.session.commit()
        relogio.avancar(300)

        resp = _acao(client, rid, "iniciar")
        assert resp.status_code == 200
        assert contar(SessaoReparo, SessaoReparo.reparo_id == rid) == 2
        assert contar(SessaoReparo, SessaoReparo.reparo_id == rid, SessaoReparo.fim.is_(None)) == 1
        assert resp.get_json()["data"]["reparo"]["total_minutos_trabalhados"] == 0

    def test_tempo_decorrido_ao_vivo(self, client, reparo, relogio):
        rid = reparo["id"]
        _acao(client, rid, "iniciar")
        relogio.avancar(150)
        _acao(client, rid, "pausar")
        _acao(client, rid, "iniciar")
        relogio.avancar(45)

        data = client.get(f"/api/reparo/{rid}").get_json()["data"]
        assert data["total_minutos_trabalhados"] == 2
        assert data["tempo_decorrido_segundos"] == 2 * 60 + 45
        assert len(data["sessoes"]) == 2
        assert data["sessoes"][0]["minutos"] == 2
        assert data["sessoes"][1]["fim"] is None

    def test_total_nunca_diminui(self, client, reparo, relogio):
        rid = reparo["id"]
        totais = []
        for segundos in (61, 30, 200):
            _acao(client, rid, "iniciar")
            relogio.avancar(segundos)
            totais.append(_acao(client, rid, "pausar").get_json()["data"]["reparo"]["total_minutos_trabalhados"])
        assert totais == [1, 1, 4]

    def test_finalizar_pausado_nao_conta_tempo_parado(self, client, reparo, relogio):
        rid = reparo["id"]
        _acao(client, rid, "iniciar")
        relogio.avancar(60)
        _acao(client, rid, "pausar")
        relogio.avancar(3600)
        resp = _acao(client, rid, "finalizar")
        assert resp.get_json()["data"]["total_minutos"] == 1


class TestTransicoesInvalidas:

    def test_iniciar_duas_vezes(self, client, reparo, relogio):
        _acao(client, reparo["id"], "iniciar")
        resp = _acao(client, reparo["id"], "iniciar")
        assert resp.status_code == 409

    def test_pausar_sem_iniciar(self, client, reparo):
        assert _acao(client, reparo["id"], "pausar").status_code == 409

    def test_nada_depois_de_finalizado(self, client, reparo, relogio):
        rid = reparo["id"]
        _acao(client, rid, "finalizar")
        assert _acao(client, rid, "finalizar").status_code == 409
        assert _acao(client, rid, "iniciar").status_code == 409
        assert _acao(client, rid, "pausar").status_code == 409

    def test_destino_invalido_nao_altera_nada(self, client, reparo, relogio):
        rid = reparo["id"]
        _acao(client, rid, "iniciar")
        resp = _acao(client, rid, "finalizar", status_destino="lixo")
        assert resp.status_code == 400
        assert db_status(rid) == "em_progresso"

    def test_corpo_malformado_nao_finaliza(self, client, reparo, relogio):
        rid = reparo["id"]
        resp = client.post(
            f"/api/reparo/{rid}/finalizar",
            data='{"status_destino": "venda",}',
            content_type="application/json",
        )
        assert resp.status_code == 400
        assert db_status(rid) == "aguardando"
        equip = recarregar(reparo["equipamento_id"])
        assert (equip.status, equip.endereco_id) == ("ag_triagem", reparo["caixa"].id)

    def test_reparo_inexistente(self, client):
        assert client.get("/api/reparo/999").status_code == 404
        assert _acao(client, 999, "iniciar").status_code == 404


def db_status(reparo_id):
    db.session.expire_all()
    return db.session.get(Reparo, reparo_id).status


class TestFinalizacao:

    def test_venda_limpa_endereco(self, client, reparo, relogio):
        resp = _acao(client, reparo["id"], "finalizar", status_destino="venda")
        assert resp.get_json()["data"]["status_destino"] == "venda"
        equip = recarregar(reparo["equipamento_id"])
        assert (equip.status, equip.endereco_id) == ("venda", None)

    def test_reposicao_em_outra_caixa(self, client, fabrica, reparo, relogio):
        nova = fabrica.caixa()
        _acao(client, reparo["id"], "finalizar", status_destino="reposicao", caixa_destino_id=nova.id)
        equip = recarregar(reparo["equipamento_id"])
        assert (equip.status, equip.endereco_id) == ("reposicao", nova.id)

    def test_pre_venda_mantem_endereco(self, client, reparo, relogio):
        _acao(client, reparo["id"], "finalizar", status_destino="pre_venda")
        equip = recarregar(reparo["equipamento_id"])
        assert (equip.status, equip.endereco_id) == ("pre_venda", reparo["caixa"].id)

    def test_historico_registra_tempo_e_destino(self, client, reparo, relogio):
        rid = reparo["id"]
        _acao(client, rid, "iniciar")
        relogio.avancar(180)
        _acao(client, rid, "finalizar", status_destino="reposicao", observacoes_finais="Trocado o SSD")

        equip = recarregar(reparo["equipamento_id"])
        ultimo = equip.historico[-1]
        assert ultimo.status_anterior == "ag_triagem"
        assert ultimo.status_novo == "reposicao"
        assert ultimo.observacao == "Reparo finalizado. Tempo: 3 min. Destino: reposicao. Trocado o SSD"

    def test_diagnostico_gravado(self, client, reparo, relogio):
        rid = reparo["id"]
        _acao(client, rid, "finalizar", diagnostico="Placa-mãe")
        data = client.get(f"/api/reparo/{rid}").get_json()["data"]
        assert data["diagnostico"] == "Placa-mãe"
        assert data["status"] == "finalizado"
        assert data["finalizado_em"] == relogio().isoformat()

    def test_novo_reparo_depois_de_finalizado(self, client, reparo, relogio):
        _acao(client, reparo["id"], "finalizar")
        resp = client.post(f"/api/equipamento/{reparo['equipamento_id']}/saida", json={"status_destino": "ag_triagem"})
        assert resp.get_json()["data"]["reparo"]["status"] == "aguardando"
        assert contar(Reparo, Reparo.equipamento_id == reparo["equipamento_id"]) == 2

    def test_atualiza_descricao(self, client, reparo):
        resp = client.put(f"/api/reparo/{reparo['id']}", json={"descricao_problema": "Não liga"})
        assert resp.get_json()["data"]["descricao_problema"] == "Não liga"


class TestPrioridades:

    def test_modelo_critico_primeiro(self, client, fabrica, reparo):
        folgado = fabrica.item(nome="Folgado", minimo=0, maximo=5)
        equip = fabrica.equipamento(folgado, fabrica.caixa())
        client.post(f"/api/equipamento/{equip.id}/saida", json={"status_destino": "ag_triagem"})

        body = client.get("/api/reparo/prioridades").get_json()
        assert body["total"] == 2
        primeiro, segundo = body["data"]
        assert primeiro["reparo_id"] == reparo["id"]
        assert primeiro["critico"] is True
        assert primeiro["deficit"] == 3
        assert segundo["modelo"] == "Folgado"
        assert segundo["critico"] is False

    def test_finalizados_saem_da_fila(self, client, reparo, relogio):
        _acao(client, reparo["id"], "finalizar")
        assert client.get("/api/reparo/prioridades").get_json()["total"] == 0
