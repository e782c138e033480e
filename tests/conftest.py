import json
from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from config import Configuracao
from erros import ErroUpstream
from repositorio_sqlite import RepositorioSQLite

AGORA = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class RelogioFixo:
    def __init__(self, agora=AGORA):
        self.agora = agora

    def __call__(self):
        return self.agora

    def avancar(self, dias):
        self.agora = self.agora + timedelta(days=dias)


class FakeClienteMP:
    """Substitui o SDK: pagamentos cadastrados no teste, preferências registradas"""

    def __init__(self):
        self.pagamentos = {}
        self.consultas = []
        self.preferencias = []
        self.falhar = False

    def ambiente(self):
        return "SANDBOX"

    def buscar_pagamento(self, payment_id):
        self.consultas.append(payment_id)
        if self.falhar or payment_id not in self.pagamentos:
            raise ErroUpstream("Erro ao consultar pagamento", "Mercado Pago respondeu status 404")
        return self.pagamentos[payment_id]

    def criar_preferencia_vip(self, plano, email, user_id=None):
        if self.falhar:
            raise ErroUpstream("Erro ao criar preferência", "Mercado Pago respondeu status 500")
        self.preferencias.append({"plano": plano, "email": email, "user_id": user_id})
        return {
            "init_point": "https://sandbox.mercadopago.com.br/checkout/v1/redirect?pref_id=pref-1",
            "id": "pref-1",
        }


def montar_pagamento(payment_id="1001", status="approved", email="cliente@exemplo.com",
                     plano="monthly", valor=7.70, com_referencia=True, payer_email=None):
    pagamento = {
        "id": int(payment_id),
        "status": status,
        "transaction_amount": valor,
        "currency_id": "BRL",
        "payment_method_id": "pix",
        "payer": {"email": payer_email} if payer_email else {},
        "metadata": {},
    }
    if com_referencia:
        pagamento["external_reference"] = json.dumps({
            "planType": plano,
            "email": email,
            "userId": None,
            "timestamp": 1717243200000,
        })
    return pagamento


@pytest.fixture
def relogio():
    return RelogioFixo()


@pytest.fixture
def repo(tmp_path):
    repositorio = RepositorioSQLite(str(tmp_path / "vip.db"))
    repositorio.init_db()
    return repositorio


@pytest.fixture
def cliente_mp():
    return FakeClienteMP()


@pytest.fixture
def pagamento():
    """Cadastra um pagamento no Mercado Pago falso"""
    def _cadastrar(cliente, payment_id="1001", **kwargs):
        cliente.pagamentos[payment_id] = montar_pagamento(payment_id, **kwargs)
        return cliente.pagamentos[payment_id]
    return _cadastrar


@pytest.fixture
def config(tmp_path):
    return Configuracao(
        mp_access_token="TEST-1234",
        webhook_base_url="https://vip.exemplo.com",
        database_path=str(tmp_path / "vip.db"),
        catalogo_politica="prefixo",
        catalogo_limite=3,
    )


@pytest.fixture
def app(config, repo, cliente_mp, relogio):
    aplicacao = create_app(config, repositorio=repo, cliente_mp=cliente_mp, relogio=relogio)
    aplicacao.config["TESTING"] = True
    return aplicacao


@pytest.fixture
def client(app):
    return app.test_client()
