# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db safra.db
  python app.py estoque listar --user produtor-1
  python app.py estoque ajustar Ureia 40 --preco 3 --user produtor-1
  python app.py financeiro saldo --filtro proximos-7-dias --user produtor-1
  python app.py custos --area 10 --produtividade 28 --user produtor-1
"""

from safra.adapters.cli import main

if __name__ == "__main__":
    main()
