# repositorio_sqlite.py
import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path

from erros import ErroUpstream
from modelos import (
    AssinaturaVIP,
    Pelicula,
    Perfil,
    RegistroPagamento,
    normalizar_email,
    para_iso,
)
from repositorio import RepositorioVIP

logger = logging.getLogger(__name__)

DDL = [
    '''
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        email TEXT UNIQUE NOT NULL,
        name TEXT,
        is_vip INTEGER NOT NULL DEFAULT 0,
        vip_expires_at TEXT,
        created_at TEXT,
        updated_at TEXT
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS usuarios_vip (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE NOT NULL,
        plano TEXT NOT NULL,
        data_inicio TEXT NOT NULL,
        data_expiracao TEXT NOT NULL,
        pagamento_aprovado INTEGER NOT NULL DEFAULT 0,
        payment_id TEXT,
        origem TEXT
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS vip_payments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        payment_id TEXT UNIQUE NOT NULL,
        user_id TEXT,
        amount REAL,
        currency TEXT,
        payment_method TEXT,
        payment_status TEXT,
        mercado_pago_data TEXT,
        processed INTEGER NOT NULL DEFAULT 0,
        received_at TEXT
    )
    ''',
    '''
    CREATE TABLE IF NOT EXISTS peliculas_3d (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        modelo TEXT NOT NULL,
        compatibilidade TEXT NOT NULL,
        is_premium INTEGER NOT NULL DEFAULT 0,
        linha TEXT NOT NULL DEFAULT 'peliculas',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    ''',
]

# Só grava se ainda não houver registro processado para este payment_id
SQL_REIVINDICAR_PAGAMENTO = '''
    INSERT INTO vip_payments (payment_id, user_id, amount, currency, payment_method,
                              payment_status, mercado_pago_data, processed, received_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?)
    ON CONFLICT(payment_id) DO UPDATE SET
        user_id = excluded.user_id,
        amount = excluded.amount,
        currency = excluded.currency,
        payment_method = excluded.payment_method,
        payment_status = excluded.payment_status,
        mercado_pago_data = excluded.mercado_pago_data,
        processed = 1
    WHERE vip_payments.processed = 0
'''

SQL_UPSERT_ASSINATURA = '''
    INSERT INTO usuarios_vip (email, plano, data_inicio, data_expiracao,
                              pagamento_aprovado, payment_id, origem)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(email) DO UPDATE SET
        plano = excluded.plano,
        data_inicio = excluded.data_inicio,
        data_expiracao = excluded.data_expiracao,
        pagamento_aprovado = excluded.pagamento_aprovado,
        payment_id = excluded.payment_id,
        origem = excluded.origem
'''


class RepositorioSQLite(RepositorioVIP):
    """Banco SQLite local"""

    def __init__(self, database: str):
        self.database = database

    def get_db_connection(self):
        """Obtém conexão com o banco de dados"""
        if self.database != ":memory:":
            Path(self.database).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.database, timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def transacao(self):
        """Abre conexão com BEGIN IMMEDIATE; commit no fim ou rollback em erro"""
        try:
            conn = self.get_db_connection()
        except sqlite3.Error as e:
            raise ErroUpstream("Erro ao conectar ao banco de dados", str(e))
        try:
            conn.execute("BEGIN IMMEDIATE")
            cursor = conn.cursor()
            yield cursor
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise ErroUpstream("Erro no banco de dados", str(e))
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    @contextmanager
    def leitura(self):
        try:
            conn = self.get_db_connection()
        except sqlite3.Error as e:
            raise ErroUpstream("Erro ao conectar ao banco de dados", str(e))
        try:
            yield conn.cursor()
        except sqlite3.Error as e:
            raise ErroUpstream("Erro no banco de dados", str(e))
        finally:
            conn.close()

    def init_db(self):
        """Cria as tabelas se não existirem"""
        with self.transacao() as cursor:
            for stmt in DDL:
                cursor.execute(stmt)
        logger.info("✅ Banco de dados SQLite inicializado (%s)", self.database)

    # ========== PERFIS ==========

    def buscar_perfil(self, email):
        with self.leitura() as cursor:
            cursor.execute('SELECT * FROM profiles WHERE email = ?', (normalizar_email(email),))
            row = cursor.fetchone()
        return Perfil.from_dict(dict(row)) if row else None

    def criar_perfil_convidado(self, email, agora):
        email = normalizar_email(email)
        perfil = Perfil(
            id=str(uuid.uuid4()),
            email=email,
            nome=email.split("@")[0],
            is_vip=False,
            criado_em=agora,
            atualizado_em=agora,
        )
        with self.transacao() as cursor:
            cursor.execute('''
                INSERT INTO profiles (id, email, name, is_vip, created_at, updated_at)
                VALUES (?, ?, ?, 0, ?, ?)
                ON CONFLICT(email) DO NOTHING
            ''', (perfil.id, perfil.email, perfil.nome, para_iso(agora), para_iso(agora)))
            criado = cursor.rowcount == 1
        if not criado:
            # Outra requisição criou o perfil ao mesmo tempo
            return self.buscar_perfil(email)
        return perfil

    # ========== ASSINATURAS / PAGAMENTOS ==========

    def buscar_assinatura(self, email):
        with self.leitura() as cursor:
            cursor.execute('SELECT * FROM usuarios_vip WHERE email = ?', (normalizar_email(email),))
            row = cursor.fetchone()
        return AssinaturaVIP.from_dict(dict(row)) if row else None

    def buscar_pagamento(self, payment_id):
        with self.leitura() as cursor:
            cursor.execute('SELECT * FROM vip_payments WHERE payment_id = ?', (str(payment_id),))
            row = cursor.fetchone()
        return RegistroPagamento.from_dict(dict(row)) if row else None

    def registrar_pagamento_aprovado(self, pagamento, perfil, assinatura):
        with self.transacao() as cursor:
            cursor.execute(SQL_REIVINDICAR_PAGAMENTO, (
                pagamento.payment_id,
                perfil.id,
                pagamento.valor,
                pagamento.moeda,
                pagamento.metodo,
                pagamento.status,
                json.dumps(pagamento.dados_processador, ensure_ascii=False, default=str),
                para_iso(pagamento.recebido_em),
            ))
            if cursor.rowcount == 0:
                return False

            cursor.execute('''
                UPDATE profiles SET is_vip = 1, vip_expires_at = ?, updated_at = ?
                WHERE id = ?
            ''', (para_iso(assinatura.data_expiracao), para_iso(assinatura.data_inicio), perfil.id))

            cursor.execute(SQL_UPSERT_ASSINATURA, (
                normalizar_email(assinatura.email),
                assinatura.plano,
                para_iso(assinatura.data_inicio),
                para_iso(assinatura.data_expiracao),
                1 if assinatura.pagamento_aprovado else 0,
                assinatura.payment_id,
                assinatura.origem,
            ))
        return True

    # ========== CATÁLOGO ==========

    def listar_catalogo(self, linha=None):
        with self.leitura() as cursor:
            if linha:
                cursor.execute('SELECT * FROM peliculas_3d WHERE linha = ? ORDER BY id', (linha,))
            else:
                cursor.execute('SELECT * FROM peliculas_3d ORDER BY id')
            rows = cursor.fetchall()
        return [Pelicula.from_dict(dict(row)) for row in rows]

    def importar_catalogo(self, itens):
        itens = list(itens)
        with self.transacao() as cursor:
            cursor.executemany('''
                INSERT INTO peliculas_3d (modelo, compatibilidade, is_premium, linha)
                VALUES (?, ?, ?, ?)
            ''', [(p.modelo, p.compatibilidade, 1 if p.is_premium else 0, p.linha) for p in itens])
        return len(itens)

    def contar_catalogo(self):
        with self.leitura() as cursor:
            cursor.execute('SELECT COUNT(*) FROM peliculas_3d')
            return cursor.fetchone()[0]

    def verificar_conexao(self):
        try:
            with self.leitura() as cursor:
                cursor.execute('SELECT 1')
            return True
        except ErroUpstream:
            return False
