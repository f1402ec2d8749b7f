# safra/adapters/cli.py
"""
CLI do Zé da Safra (Typer).

Comandos principais:
- migrate                       -> aplica migrações
- estoque listar                -> produtos agrupados com saldo e custo médio
- estoque grupo <nome>          -> detalhe de um produto (fornecedores, consumo)
- estoque entrada ...           -> registra uma entrada
- estoque saida <nome> <qtd>    -> retira do estoque (lotes mais antigos primeiro)
- estoque ajustar <nome> <qtd>  -> entrada corretiva de produto em déficit
- estoque importar <xlsx>       -> entradas em lote a partir de um XLSX
- estoque historico             -> histórico de movimentações
- financeiro saldo|consolidado|categorias|importar
- custos                        -> custo da safra x referência CONAB
- notificacoes                  -> notificações e alertas de falta
- logs <tipo>                   -> últimas linhas de um log

Todos os comandos que leem ou gravam dados do produtor exigem ``--user``.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from safra.config import DB_PATH
from safra.adapters.parsers import formatar_moeda, formatar_numero, parse_numero_br
from safra.domain.models import TIPO_SAIDA
from safra.domain.notificacoes import AlertaFalta
from safra.domain.policies import status_estoque
from safra.domain.saldos import FiltroPeriodo
from safra.domain.unidades import formatar_quantidade_auto
from safra.infra.cache import CacheConsumo
from safra.infra.logger import LOG_FILES, get_log_summary, log_system_event
from safra.infra.migrations import apply_migrations
from safra.infra.procedures import ProcedimentoError
from safra.usecases.ajustes import ajustar_deficit
from safra.usecases.custo_safra import custo_da_safra
from safra.usecases.financeiro import run_transacoes_lote, saldo_consolidado, saldo_periodo, totais_por_categoria
from safra.usecases.historico import listar_historico
from safra.usecases.notificacoes import alertas_atuais, gerar_alertas, listar_notificacoes, marcar_lida
from safra.usecases.registrar_entrada import registrar_entrada, run_entrada_lote
from safra.usecases.registrar_saida import remover_quantidade_fifo
from safra.usecases.verificar_estoque import carregar_grupos, obter_grupo, resumir


app = typer.Typer(help="Zé da Safra - CLI")
console = Console()
_caches: Dict[str, CacheConsumo] = {}

ERROS_DE_DOMINIO = (ValueError, ProcedimentoError, sqlite3.Error, FileNotFoundError)


# -----------------------
# util
# -----------------------

def _cache(db_path: str) -> CacheConsumo:
    """Um cache de consumo por banco."""
    if db_path not in _caches:
        _caches[db_path] = CacheConsumo()
    return _caches[db_path]


def _falhar(msg: str) -> None:
    console.print(Panel(msg, title="Erro", border_style="red"))
    raise typer.Exit(code=1)


def _numero(txt: str, campo: str) -> float:
    valor = parse_numero_br(txt)
    if valor is None:
        _falhar(f"{campo} inválido: {txt!r}")
    return valor


def _display_table(data: List[Dict[str, Any]], title: str = "Resultado") -> None:
    """Exibe uma lista de dicionários em tabela Rich (colunas = chaves do 1º item)."""
    if not data:
        console.print(Panel("Nenhum dado encontrado", title=title, border_style="yellow"))
        return

    table = Table(title=title, box=box.ROUNDED)
    columns = list(data[0].keys())
    for column in columns:
        if column.lower() in ("quantidade", "saldo", "valor", "media", "entradas", "saidas"):
            table.add_column(column, justify="right")
        elif column.lower() in ("data", "validade"):
            table.add_column(column, justify="center")
        else:
            table.add_column(column)

    for row in data:
        values = []
        for col in columns:
            val = row.get(col, "")
            if isinstance(val, float):
                values.append(formatar_numero(val, 2))
            elif isinstance(val, datetime):
                values.append(val.strftime("%d/%m/%Y"))
            elif val is None:
                values.append("")
            else:
                values.append(str(val))
        table.add_row(*values)
    console.print(table)


def _cor_status(status: str) -> str:
    cores = {"DEFICIT": "bold red", "ZERADO": "bold yellow", "OK": "bold green"}
    cor = cores.get(status)
    return f"[{cor}]{status}[/]" if cor else status


def _grupo_ou_falha(user_id: str, nome: str, db_path: str):
    grupo = obter_grupo(user_id, nome, db_path, _cache(db_path))
    if grupo is None:
        _falhar(f"Produto '{nome}' não encontrado no estoque de {user_id}")
    return grupo


# -----------------------
# comandos de infra
# -----------------------

@app.command("migrate")
def cmd_migrate(db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite")):
    """Aplica as migrações pendentes."""
    versao = apply_migrations(db_path)
    log_system_event("migrate", {"db": db_path, "versao": versao})
    typer.echo(f">> Migrações aplicadas (versão {versao}) em: {db_path}")


@app.command("logs")
def cmd_logs(
    tipo: str = typer.Argument("transactions", help=" | ".join(LOG_FILES)),
    linhas: int = typer.Option(50, help="Quantidade de linhas"),
):
    """Mostra as últimas linhas de um log."""
    typer.echo(get_log_summary(tipo, linhas))


# -----------------------
# estoque
# -----------------------

estoque_app = typer.Typer(help="Estoque de insumos (agrupado por produto).")
app.add_typer(estoque_app, name="estoque")


@estoque_app.command("listar")
def cmd_estoque_listar(
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    somente_deficit: bool = typer.Option(False, "--deficit", help="Só produtos em déficit"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Lista os produtos com saldo, custo médio e status."""
    grupos = carregar_grupos(user_id, db_path, _cache(db_path))
    if somente_deficit:
        grupos = [g for g in grupos if g.em_deficit]
    if not grupos:
        console.print(Panel("Nenhum produto encontrado", title="Estoque", border_style="yellow"))
        return

    table = Table(title=f"Estoque - {user_id}", box=box.ROUNDED)
    table.add_column("Produto")
    table.add_column("Saldo", justify="right")
    table.add_column("Custo médio", justify="right")
    table.add_column("Valor em estoque", justify="right")
    table.add_column("Status")
    for g in grupos:
        table.add_row(
            g.nome,
            g.saldo_exibicao,
            f"{formatar_moeda(g.media_preco)}/{g.unidade_referencia}",
            formatar_moeda(g.valor_em_estoque),
            _cor_status(status_estoque(g.saldo)),
        )
    console.print(table)

    resumo = resumir(grupos)
    console.print(
        f"[dim]{resumo.produtos} produto(s), {resumo.em_deficit} em déficit, "
        f"valor total {formatar_moeda(resumo.valor_total)}[/dim]"
    )


@estoque_app.command("grupo")
def cmd_estoque_grupo(
    nome: str = typer.Argument(..., help="Nome do produto"),
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Detalha um produto: lotes por fornecedor e consumo por atividade."""
    g = _grupo_ou_falha(user_id, nome, db_path)
    console.print(Panel(
        "\n".join([
            f"Saldo: {g.saldo_exibicao} ({_cor_status(status_estoque(g.saldo))})",
            f"Entradas: {formatar_quantidade_auto(g.total_entradas, g.unidade_referencia)}",
            f"Saídas: {formatar_quantidade_auto(g.total_saidas, g.unidade_referencia)}",
            f"Custo médio: {formatar_moeda(g.media_preco)}/{g.unidade_referencia}",
            f"Marcas: {', '.join(m for m in g.marcas if m) or '-'}",
            f"Lotes: {', '.join(l for l in g.lotes if l) or '-'}",
        ]),
        title=g.nome,
    ))
    _display_table(
        [
            {
                "fornecedor": f.fornecedor,
                "valor": formatar_moeda(f.valor) if f.valor is not None else "-",
                "quantidade": f.quantidade,
                "registro_mapa": f.registro_mapa,
            }
            for f in g.fornecedores
        ],
        title="Fornecedores",
    )
    if g.consumos:
        _display_table(
            [
                {
                    "atividade": c.nome_atividade,
                    "data": c.data_atividade,
                    "quantidade": c.quantidade,
                    "unidade": c.unidade,
                }
                for c in g.consumos
            ],
            title="Consumo por atividade",
        )


@estoque_app.command("entrada")
def cmd_estoque_entrada(
    nome: str = typer.Argument(..., help="Nome do produto"),
    quantidade: str = typer.Argument(..., help="Quantidade (ex.: 2,5)"),
    unidade: str = typer.Argument(..., help="Unidade (kg, L, un...)"),
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    valor_total: Optional[str] = typer.Option(None, "--valor-total", help="Valor total da nota (R$)"),
    marca: Optional[str] = typer.Option(None, help="Marca ou fabricante"),
    categoria: Optional[str] = typer.Option(None, help="Categoria do insumo"),
    lote: Optional[str] = typer.Option(None, help="Lote"),
    validade: Optional[str] = typer.Option(None, help="Validade (YYYY-MM-DD)"),
    fornecedor: Optional[str] = typer.Option(None, help="Fornecedor"),
    registro_mapa: Optional[str] = typer.Option(None, "--mapa", help="Registro MAPA"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra uma entrada de produto."""
    qtd = _numero(quantidade, "Quantidade")
    total = _numero(valor_total, "Valor total") if valor_total is not None else None
    try:
        novo_id = registrar_entrada(
            user_id, nome, qtd, unidade,
            valor_total=total, marca=marca, categoria=categoria, lote=lote,
            validade=validade, fornecedor=fornecedor, registro_mapa=registro_mapa,
            db_path=db_path, cache=_cache(db_path),
        )
    except ERROS_DE_DOMINIO as e:
        _falhar(str(e))
    typer.echo(f">> Entrada registrada (id {novo_id}).")


@estoque_app.command("saida")
def cmd_estoque_saida(
    nome: str = typer.Argument(..., help="Nome do produto"),
    quantidade: str = typer.Argument(..., help="Quantidade na unidade de referência do produto"),
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    tipo: str = typer.Option(TIPO_SAIDA, help="saida | aplicacao"),
    observacao: Optional[str] = typer.Option(None, "--obs", help="Observação"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Retira produto do estoque (lotes mais antigos primeiro)."""
    qtd = _numero(quantidade, "Quantidade")
    grupo = _grupo_ou_falha(user_id, nome, db_path)
    try:
        saida_id = remover_quantidade_fifo(
            user_id, grupo, qtd, tipo=tipo, observacao=observacao, db_path=db_path, cache=_cache(db_path),
        )
    except ERROS_DE_DOMINIO as e:
        _falhar(str(e))
    typer.echo(f">> Saída registrada (id {saida_id}): {formatar_quantidade_auto(qtd, grupo.unidade_referencia)} de {grupo.nome}.")


@estoque_app.command("ajustar")
def cmd_estoque_ajustar(
    nome: str = typer.Argument(..., help="Nome do produto"),
    quantidade: str = typer.Argument(..., help="Quantidade na unidade de referência do produto"),
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    preco: str = typer.Option("0", "--preco", help="Valor unitário (R$ por unidade de referência)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Entrada corretiva: abate o déficit e credita a sobra."""
    qtd = _numero(quantidade, "Quantidade")
    valor = _numero(preco, "Preço")
    grupo = _grupo_ou_falha(user_id, nome, db_path)
    try:
        res = ajustar_deficit(user_id, grupo, qtd, valor, db_path=db_path, cache=_cache(db_path))
    except ERROS_DE_DOMINIO as e:
        _falhar(str(e))
    un = res["unidade"]
    console.print(Panel(
        "\n".join([
            f"Abatido do déficit: {formatar_quantidade_auto(res['quantidade_deficit'], un)}",
            f"Disponível: {formatar_quantidade_auto(res['quantidade_disponivel'], un)}",
            f"Saldo: {formatar_quantidade_auto(res['saldo_anterior'], un)} → {formatar_quantidade_auto(res['saldo_final'], un)}",
        ]),
        title=f"Ajuste - {grupo.nome}",
        border_style="green",
    ))


@estoque_app.command("importar")
def cmd_estoque_importar(
    path: str = typer.Argument(..., help="Caminho do XLSX de entradas"),
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Registra entradas em lote a partir de um XLSX."""
    try:
        info = run_entrada_lote(path, user_id, db_path=db_path, cache=_cache(db_path))
    except ERROS_DE_DOMINIO as e:
        _falhar(str(e))
    console.print(Panel(
        f"Inseridas: {info['linhas_inseridas']}\nIgnoradas: {info['linhas_ignoradas']}",
        title="Entradas em Lote",
    ))


@estoque_app.command("historico")
def cmd_estoque_historico(
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    produto_id: Optional[int] = typer.Option(None, "--produto", help="Filtra por produto_id"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Histórico de movimentações."""
    movs = listar_historico(user_id, produto_id, db_path)
    _display_table(
        [
            {
                "data": m.created_at,
                "produto": m.produto_id,
                "tipo": m.tipo,
                "quantidade": formatar_quantidade_auto(m.quantidade, m.unidade),
                "observacao": m.observacao,
            }
            for m in movs
        ],
        title="Histórico de Movimentações",
    )


# -----------------------
# financeiro
# -----------------------

fin_app = typer.Typer(help="Saldos e transações financeiras.")
app.add_typer(fin_app, name="financeiro")


@fin_app.command("saldo")
def cmd_fin_saldo(
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    filtro: FiltroPeriodo = typer.Option(FiltroPeriodo.TODOS, help="Período"),
    inicio: Optional[str] = typer.Option(None, help="Início (YYYY-MM-DD), período personalizado"),
    fim: Optional[str] = typer.Option(None, help="Fim (YYYY-MM-DD), período personalizado"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Entradas, saídas e saldos do período."""
    s = saldo_periodo(user_id, filtro, inicio, fim, db_path=db_path)
    linhas = [
        f"Entradas: {formatar_moeda(s.total_entradas)}",
        f"Saídas: {formatar_moeda(s.total_saidas)}",
        f"Saldo atual: {formatar_moeda(s.saldo_real)}",
        f"Transações realizadas: {s.transacoes_realizadas} | futuras: {s.transacoes_futuras}",
    ]
    if s.saldo_projetado is not None:
        linhas.append(f"Saldo projetado: {formatar_moeda(s.saldo_projetado)}")
    if s.impacto_futuro_7_dias is not None:
        linhas.append(f"Em 7 dias: {formatar_moeda(s.impacto_futuro_7_dias)}")
        linhas.append(f"Em 30 dias: {formatar_moeda(s.impacto_futuro_30_dias)}")
    console.print(Panel("\n".join(linhas), title=f"Financeiro - {filtro.value}"))


@fin_app.command("consolidado")
def cmd_fin_consolidado(
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Saldo realizado, projetado e impacto dos próximos 7/30 dias."""
    s = saldo_consolidado(user_id, db_path=db_path)
    console.print(Panel(
        "\n".join([
            f"Saldo real: {formatar_moeda(s.saldo_real)} ({s.total_transacoes_reais} transações)",
            f"Saldo projetado: {formatar_moeda(s.saldo_projetado)} ({s.total_transacoes_futuras} futuras)",
            f"Impacto 7 dias: {formatar_moeda(s.impacto_futuro_7_dias)}",
            f"Impacto 30 dias: {formatar_moeda(s.impacto_futuro_30_dias)}",
        ]),
        title="Saldo Consolidado",
    ))


@fin_app.command("categorias")
def cmd_fin_categorias(
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Total (com sinal) por categoria."""
    _display_table(
        [{"categoria": cat, "valor": formatar_moeda(v)} for cat, v in totais_por_categoria(user_id, db_path)],
        title="Totais por Categoria",
    )


@fin_app.command("importar")
def cmd_fin_importar(
    path: str = typer.Argument(..., help="Caminho do XLSX de transações"),
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Importa transações financeiras de um XLSX."""
    try:
        info = run_transacoes_lote(path, user_id, db_path=db_path)
    except ERROS_DE_DOMINIO as e:
        _falhar(str(e))
    typer.echo(f">> {info['linhas_inseridas']} transação(ões) importada(s).")


# -----------------------
# custos
# -----------------------

@app.command("custos")
def cmd_custos(
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    area: str = typer.Option(..., help="Área cultivada (ha)"),
    produtividade: str = typer.Option(..., help="Produtividade (sacas/ha)"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Custo real por hectare e por saca comparado à referência CONAB."""
    linhas, totais = custo_da_safra(user_id, area, produtividade, db_path=db_path)
    table = Table(title="Custo da Safra x CONAB", box=box.ROUNDED)
    for col in ("Categoria", "Real R$/ha", "Real R$/saca", "CONAB R$/ha", "CONAB R$/saca"):
        table.add_column(col, justify="left" if col == "Categoria" else "right")
    for l in linhas:
        table.add_row(
            l.categoria,
            formatar_moeda(l.real_hectare),
            formatar_moeda(l.real_saca),
            formatar_moeda(l.referencia_hectare),
            formatar_moeda(l.referencia_saca),
        )
    table.add_row(
        "[bold]Total[/]",
        formatar_moeda(totais.real_hectare),
        formatar_moeda(totais.real_saca),
        formatar_moeda(totais.referencia_hectare),
        formatar_moeda(totais.referencia_saca),
    )
    console.print(table)


# -----------------------
# notificações
# -----------------------

@app.command("notificacoes")
def cmd_notificacoes(
    user_id: str = typer.Option(..., "--user", help="Produtor (user_id)"),
    nao_lidas: bool = typer.Option(False, "--nao-lidas", help="Só as não lidas"),
    gerar: bool = typer.Option(False, "--gerar", help="Grava alertas de falta do estoque atual"),
    ler: Optional[int] = typer.Option(None, "--ler", help="Marca a notificação como lida"),
    db_path: str = typer.Option(DB_PATH, "--db", help="Caminho do SQLite"),
):
    """Notificações do produtor (alertas de falta e avisos do bot)."""
    if ler is not None:
        if not marcar_lida(ler, user_id, db_path):
            _falhar(f"Notificação {ler} não encontrada")
        typer.echo(f">> Notificação {ler} marcada como lida.")
        return
    if gerar:
        ids = gerar_alertas(user_id, db_path, _cache(db_path))
        typer.echo(f">> {len(ids)} alerta(s) de falta gerado(s).")

    linhas = []
    for n in listar_notificacoes(user_id, nao_lidas, db_path):
        item = n.notificacao
        if isinstance(item, AlertaFalta):
            texto = f"Falta de {formatar_quantidade_auto(item.quantidade, item.unidade)} de {item.nome_produto}"
        else:
            texto = str(item.raw)
        linhas.append({"id": n.id, "tipo": item.tipo, "mensagem": texto, "lida": "sim" if n.lida else "não"})
    _display_table(linhas, title="Notificações")

    if not gerar and not linhas:
        pendentes = alertas_atuais(user_id, db_path, _cache(db_path))
        if pendentes:
            console.print(f"[yellow]{len(pendentes)} produto(s) em déficit sem alerta gravado (use --gerar).[/yellow]")


# Entry point opcional:
def main():
    app()


if __name__ == "__main__":
    main()
