from enum import Enum


class StatusEquipamento(str, Enum):
    REPOSICAO = "reposicao"
    AG_TRIAGEM = "ag_triagem"
    PRE_TRIAGEM = "pre_triagem"
    PRE_VENDA = "pre_venda"
    EM_USO = "em_uso"
    VENDA = "venda"
    AG_INTERNALIZACAO = "ag_internalizacao"


# fora do armazém: sem endereço físico
STATUS_FORA_DO_ESTOQUE = frozenset({StatusEquipamento.EM_USO.value, StatusEquipamento.VENDA.value})


class StatusReparo(str, Enum):
    AGUARDANDO = "aguardando"
    EM_PROGRESSO = "em_progresso"
    PAUSADO = "pausado"
    FINALIZADO = "finalizado"


class StatusSolicitacao(str, Enum):
    PENDENTE = "pendente"
    EM_ANDAMENTO = "em_andamento"
    ATENDIDA = "atendida"
    CANCELADA = "cancelada"


STATUS_SOLICITACAO_ATIVOS = frozenset({StatusSolicitacao.PENDENTE.value, StatusSolicitacao.EM_ANDAMENTO.value})


class NivelEndereco(str, Enum):
    PORTA_PALLET = "porta_pallet"
    SESSAO = "sessao"
    PALLET = "pallet"
    CAIXA = "caixa"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @property
    def nivel_pai(self):
        """Nível imediatamente acima, ou None para o porta-pallet."""
        r = self.rank
        return None if r == 0 else _ORDEM[r - 1]


_ORDEM = (NivelEndereco.PORTA_PALLET, NivelEndereco.SESSAO, NivelEndereco.PALLET, NivelEndereco.CAIXA)
_RANK = {n: i for i, n in enumerate(_ORDEM)}


def valores(enum_cls) -> list[str]:
    return [m.value for m in enum_cls]
