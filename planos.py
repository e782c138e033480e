# planos.py
from datetime import timedelta

PLANOS = {
    "monthly": {"title": "VIP 1 Mês", "price": 7.70, "days": 30},
    "quarterly": {"title": "VIP 3 Meses", "price": 19.90, "days": 90},
    "yearly": {"title": "VIP 1 Ano", "price": 59.90, "days": 365},
}

ALIASES = {
    "mensal": "monthly",
    "trimestral": "quarterly",
    "anual": "yearly",
}

PLANO_PADRAO = "monthly"

# (valor máximo em R$, plano) - usado só quando o pagamento não traz o tipo de plano
FAIXAS_VALOR = [
    (10.00, "monthly"),
    (25.00, "quarterly"),
]


def normalizar_plano(token):
    """Retorna a chave canônica do plano ou None se o token não for reconhecido"""
    if not token:
        return None
    token = str(token).strip().lower()
    token = ALIASES.get(token, token)
    return token if token in PLANOS else None


def plano_por_valor(valor):
    """Infere o plano pelo valor pago (R$)"""
    if valor is None:
        return None
    try:
        valor = float(valor)
    except (TypeError, ValueError):
        return None
    for limite, plano in FAIXAS_VALOR:
        if valor <= limite:
            return plano
    return "yearly"


def resolver_plano(token=None, valor=None):
    """
    Decide o plano de um pagamento aprovado.

    O tipo de plano enviado no checkout tem precedência; o valor pago só é
    consultado quando o token está ausente ou não é reconhecido.
    Retorna (plano, dias).
    """
    plano = normalizar_plano(token) or plano_por_valor(valor) or PLANO_PADRAO
    return plano, PLANOS[plano]["days"]


def calcular_periodo(agora, expiracao_atual, dias):
    """
    Calcula (inicio, fim) do novo período VIP.

    Se ainda existe uma assinatura válida, estende a partir da expiração atual;
    caso contrário começa agora. A duração é somada uma única vez.
    """
    base = agora
    if expiracao_atual is not None and expiracao_atual > agora:
        base = expiracao_atual
    return agora, base + timedelta(days=dias)
