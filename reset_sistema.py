"""Reset do sistema + cria o porta-pallet padrão.

Uso:
  python reset_sistema.py

Apaga todas as tabelas do banco apontado por DATABASE_URL, recria o schema e
monta o porta-pallet PP01 com 18 sessões (PP01.S01 ... PP01.S18).
"""

from pioerp import create_app
from pioerp.extensions import db
from pioerp.services import enderecos


def resetar_banco():
    app = create_app()
    with app.app_context():
        db.drop_all()
        db.create_all()

        pp = enderecos.montar_porta_pallet("PP01", sessoes=18)

        print("OK! Banco recriado.")
        print(f"Porta-pallet: {pp.codigo} (18 sessões)")


if __name__ == "__main__":
    resetar_banco()
