from .endereco import Endereco
from .item_catalogo import ItemCatalogo
from .equipamento import EquipamentoFisico
from .historico import HistoricoMovimentacao
from .reparo import Reparo, SessaoReparo
from .solicitacao_lote import SolicitacaoLote

__all__ = [
    "Endereco", "ItemCatalogo", "EquipamentoFisico", "HistoricoMovimentacao",
    "Reparo", "SessaoReparo", "SolicitacaoLote",
]
