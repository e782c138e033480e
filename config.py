# config.py
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from erros import ErroConfiguracao

POLITICAS_CATALOGO = ("prefixo", "percentual", "cota_marca", "cota_linha")


@dataclass(frozen=True)
class Configuracao:
    mp_access_token: str
    webhook_base_url: str
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    database_path: Optional[str] = None
    mp_webhook_secret: Optional[str] = None
    catalogo_politica: str = "cota_marca"
    catalogo_limite: int = 10
    catalogo_percentual: int = 10
    cors_origins: str = "*"
    debug: bool = False
    port: int = 5000
    log_level: str = "INFO"

    @property
    def usa_supabase(self) -> bool:
        return bool(self.supabase_url)

    @property
    def notification_url(self) -> str:
        return f"{self.webhook_base_url.rstrip('/')}/webhook/mercado_pago"


def _inteiro(env, nome, padrao):
    valor = env.get(nome)
    if valor in (None, ""):
        return padrao
    try:
        return int(valor)
    except ValueError:
        raise ErroConfiguracao(f"{nome} deve ser um número inteiro (recebido: {valor!r})")


def carregar_configuracao(env=None) -> Configuracao:
    """
    Lê e valida as variáveis de ambiente.

    Falha imediatamente (ErroConfiguracao) quando falta o token do Mercado Pago,
    a URL base do webhook ou a localização do banco (Supabase com service key,
    ou DATABASE_PATH para o SQLite local).
    """
    if env is None:
        load_dotenv()
        env = os.environ

    def texto(nome):
        return (env.get(nome) or "").strip() or None

    faltando = [nome for nome in ("MP_ACCESS_TOKEN", "WEBHOOK_BASE_URL") if not texto(nome)]

    supabase_url = texto("SUPABASE_URL")
    supabase_key = texto("SUPABASE_SERVICE_ROLE_KEY")
    database_path = texto("DATABASE_PATH")

    if supabase_url and not supabase_key:
        faltando.append("SUPABASE_SERVICE_ROLE_KEY")
    elif not supabase_url and not database_path:
        faltando.append("SUPABASE_URL (ou DATABASE_PATH)")

    if faltando:
        raise ErroConfiguracao("Variáveis de ambiente obrigatórias ausentes: " + ", ".join(faltando))

    politica = (texto("CATALOGO_POLITICA") or "cota_marca").lower()
    if politica not in POLITICAS_CATALOGO:
        raise ErroConfiguracao(
            f"CATALOGO_POLITICA inválida: {politica!r} (use {', '.join(POLITICAS_CATALOGO)})"
        )

    return Configuracao(
        mp_access_token=texto("MP_ACCESS_TOKEN"),
        webhook_base_url=texto("WEBHOOK_BASE_URL"),
        supabase_url=supabase_url,
        supabase_service_key=supabase_key,
        database_path=database_path,
        mp_webhook_secret=texto("MP_WEBHOOK_SECRET"),
        catalogo_politica=politica,
        catalogo_limite=_inteiro(env, "CATALOGO_LIMITE", 10),
        catalogo_percentual=_inteiro(env, "CATALOGO_PERCENTUAL", 10),
        cors_origins=texto("CORS_ORIGINS") or "*",
        debug=(texto("FLASK_DEBUG") or "False").lower() == "true",
        port=_inteiro(env, "PORT", 5000),
        log_level=(texto("LOG_LEVEL") or "INFO").upper(),
    )
