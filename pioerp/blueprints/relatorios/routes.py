from datetime import datetime
from io import BytesIO

from flask import current_app, request, send_file
from openpyxl import Workbook
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from pioerp.services import consultas

from . import relatorios_bp

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# =========================
# Helpers
# =========================
def _wb_to_bytes(wb: Workbook) -> BytesIO:
    bio = BytesIO()
    wb.save(bio)
    bio.seek(0)
    return bio


def _xlsx(wb: Workbook, filename: str):
    return send_file(
        _wb_to_bytes(wb),
        as_attachment=True,
        download_name=filename,
        mimetype=XLSX_MIMETYPE,
    )


MARGEM = 15 * mm
TOPO = 20 * mm


def _cabe(texto: str, largura: float, fonte: str = "Helvetica", tamanho: int = 9) -> str:
    """Corta o texto para caber na coluna, com reticências."""
    texto = str(texto)
    if stringWidth(texto, fonte, tamanho) <= largura:
        return texto
    while texto and stringWidth(texto + "…", fonte, tamanho) > largura:
        texto = texto[:-1]
    return texto + "…"


def _pdf_tabela(titulo: str, colunas: list[tuple[str, int]], linhas: list[list], filename: str, vazio: str):
    """Tabela paginada em A4. ``colunas`` são pares (cabeçalho, peso da largura)."""
    bio = BytesIO()
    c = canvas.Canvas(bio, pagesize=A4, pageCompression=1)
    c.setTitle(titulo)
    w, h = A4

    util = w - 2 * MARGEM
    peso_total = sum(peso for _, peso in colunas) or 1
    larguras = [util * peso / peso_total for _, peso in colunas]
    posicoes = [MARGEM + sum(larguras[:i]) for i in range(len(colunas))]
    pagina = 1

    def topo_da_pagina() -> float:
        y = h - TOPO
        c.setFont("Helvetica-Bold", 14)
        c.drawString(MARGEM, y, titulo)
        c.setFont("Helvetica", 8)
        c.drawRightString(w - MARGEM, y, f"Página {pagina}")
        y -= 7 * mm
        c.drawString(MARGEM, y, f"Gerado em: {datetime.now().strftime('%d/%m/%Y %H:%M')}")
        y -= 8 * mm

        c.setFont("Helvetica-Bold", 9)
        for (cabecalho, _), x, largura in zip(colunas, posicoes, larguras):
            c.drawString(x, y, _cabe(cabecalho, largura - 2, "Helvetica-Bold"))
        c.line(MARGEM, y - 1.5 * mm, w - MARGEM, y - 1.5 * mm)
        c.setFont("Helvetica", 9)
        return y - 6 * mm

    y = topo_da_pagina()
    if not linhas:
        c.drawString(MARGEM, y, vazio)

    for linha in linhas:
        if y < TOPO:
            c.showPage()
            pagina += 1
            y = topo_da_pagina()
        for celula, x, largura in zip(linha, posicoes, larguras):
            c.drawString(x, y, _cabe(celula, largura - 2))
        y -= 5 * mm

    c.showPage()
    c.save()
    bio.seek(0)

    return send_file(
        bio,
        as_attachment=True,
        download_name=filename,
        mimetype="application/pdf",
    )



# =========================
# 1) ESTOQUE POR MODELO
# =========================
@relatorios_bp.get("/estoque.xlsx")
def relatorio_estoque_xlsx():
    wb = Workbook()
    ws = wb.active
    ws.title = "Estoque"
    ws.append([
        "Modelo", "Categoria", "Mínimo", "Máximo", "Reposição", "Ag. triagem",
        "Pré-triagem", "Pré-venda", "Ag. internalização", "No armazém", "Déficit", "Crítico",
    ])

    for item in consultas.estoque_por_catalogo():
        ws.append([
            item["nome"],
            item["categoria"] or "",
            item["estoque_minimo"],
            item["estoque_maximo"],
            item["qtd_reposicao"],
            item["qtd_ag_triagem"],
            item["qtd_pre_triagem"],
            item["qtd_pre_venda"],
            item["qtd_ag_internalizacao"],
            item["qtd_total"],
            item["deficit"],
            "SIM" if item["estoque_critico"] else "",
        ])

    return _xlsx(wb, "relatorio_estoque.xlsx")


# =========================
# 2) ESTOQUE CRÍTICO
# =========================
@relatorios_bp.get("/estoque-critico.pdf")
def relatorio_estoque_critico_pdf():
    colunas = [
        ("Modelo", 4), ("Categoria", 3), ("Mín", 1),
        ("Reposição", 2), ("Triagem", 2), ("Déficit", 1),
    ]
    linhas = [
        [
            item["nome"],
            item["categoria"] or "-",
            item["estoque_minimo"],
            item["qtd_reposicao"],
            item["qtd_ag_triagem"],
            item["deficit"],
        ]
        for item in consultas.estoque_critico()
    ]
    return _pdf_tabela(
        "Estoque Crítico",
        colunas,
        linhas,
        "relatorio_estoque_critico.pdf",
        vazio="Nenhum modelo abaixo do estoque mínimo.",
    )


# =========================
# 3) MOVIMENTAÇÕES
# =========================
@relatorios_bp.get("/movimentacoes.xlsx")
def relatorio_movimentacoes_xlsx():
    limite = current_app.config["HISTORICO_LIMITE_MAXIMO"]
    movimentos = consultas.historico(
        equipamento_id=request.args.get("equipamento_id"),
        tipo=request.args.get("tipo"),
        limit=limite,
        limite_maximo=limite,
    )

    wb = Workbook()
    ws = wb.active
    ws.title = "Movimentações"
    ws.append([
        "Data", "Equipamento", "Série", "Imobilizado", "Modelo", "Tipo",
        "Status anterior", "Status novo", "Origem", "Destino", "Observação",
    ])

    for m in movimentos:
        ws.append([
            m["created_at"] or "",
            m["equipamento_id"],
            m["numero_serie"],
            m["imobilizado"],
            m["modelo"],
            m["tipo"],
            m["status_anterior"] or "",
            m["status_novo"],
            m["origem_codigo"] or "",
            m["destino_codigo"] or "",
            m["observacao"] or "",
        ])

    return _xlsx(wb, "relatorio_movimentacoes.xlsx")
