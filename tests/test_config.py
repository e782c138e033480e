import pytest

from config import carregar_configuracao
from erros import ErroConfiguracao

BASE = {
    "MP_ACCESS_TOKEN": "TEST-1234",
    "WEBHOOK_BASE_URL": "https://vip.exemplo.com/",
    "DATABASE_PATH": "/tmp/vip.db",
}


def test_configuracao_minima_sqlite():
    config = carregar_configuracao(dict(BASE))

    assert config.usa_supabase is False
    assert config.notification_url == "https://vip.exemplo.com/webhook/mercado_pago"
    assert config.catalogo_politica == "cota_marca"
    assert config.port == 5000
    assert config.mp_webhook_secret is None


def test_configuracao_supabase():
    env = dict(BASE, SUPABASE_URL="https://abc.supabase.co", SUPABASE_SERVICE_ROLE_KEY="service-key")
    del env["DATABASE_PATH"]

    config = carregar_configuracao(env)

    assert config.usa_supabase is True
    assert config.supabase_service_key == "service-key"


@pytest.mark.parametrize("remover", ["MP_ACCESS_TOKEN", "WEBHOOK_BASE_URL", "DATABASE_PATH"])
def test_variavel_obrigatoria_ausente(remover):
    env = dict(BASE)
    del env[remover]
    with pytest.raises(ErroConfiguracao) as erro:
        carregar_configuracao(env)
    assert remover in str(erro.value)


def test_supabase_sem_service_key():
    with pytest.raises(ErroConfiguracao) as erro:
        carregar_configuracao(dict(BASE, SUPABASE_URL="https://abc.supabase.co"))
    assert "SUPABASE_SERVICE_ROLE_KEY" in str(erro.value)


def test_politica_e_inteiros():
    config = carregar_configuracao(dict(BASE, CATALOGO_POLITICA="Percentual", CATALOGO_PERCENTUAL="15", PORT="8080"))
    assert config.catalogo_politica == "percentual"
    assert config.catalogo_percentual == 15
    assert config.port == 8080

    with pytest.raises(ErroConfiguracao):
        carregar_configuracao(dict(BASE, CATALOGO_POLITICA="sorteio"))
    with pytest.raises(ErroConfiguracao):
        carregar_configuracao(dict(BASE, CATALOGO_LIMITE="dez"))
