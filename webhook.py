# webhook.py
import hashlib
import hmac
import json
import logging

from erros import RequisicaoInvalida
from modelos import AssinaturaVIP, RegistroPagamento, agora_utc, normalizar_email, para_iso
from planos import calcular_periodo, resolver_plano

logger = logging.getLogger(__name__)


def _como_dict(valor):
    return valor if isinstance(valor, dict) else {}


def verificar_assinatura(secret, x_signature, x_request_id, data_id):
    """
    Valida o header x-signature do Mercado Pago ("ts=...,v1=...").

    HMAC-SHA256 do manifesto "id:<data.id>;request-id:<x-request-id>;ts:<ts>;"
    usando a chave secreta do webhook.
    """
    if not x_signature:
        return False
    partes = {}
    for parte in x_signature.split(','):
        chave, _, valor = parte.strip().partition('=')
        partes[chave] = valor
    ts, v1 = partes.get('ts'), partes.get('v1')
    if not ts or not v1:
        return False

    manifesto = ""
    if data_id:
        manifesto += f"id:{str(data_id).lower()};"
    if x_request_id:
        manifesto += f"request-id:{x_request_id};"
    manifesto += f"ts:{ts};"

    esperado = hmac.new(secret.encode(), manifesto.encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(esperado, v1)


def extrair_payment_id(notificacao, query=None):
    """Id do pagamento no corpo (data.id) ou na query string (data.id / id)"""
    query = query or {}
    payment_id = _como_dict(notificacao.get("data")).get("id")
    if not payment_id:
        payment_id = query.get("data.id")
    if not payment_id and (notificacao.get("topic") or query.get("topic")) == "payment":
        recurso = notificacao.get("resource") or query.get("id")
        # IPN antigo manda "resource" como id ou como URL terminada no id
        payment_id = str(recurso).rstrip("/").rsplit("/", 1)[-1] if recurso else None
    return str(payment_id).strip() if payment_id else None


def e_evento_de_pagamento(notificacao, query=None):
    query = query or {}
    tipo = notificacao.get("type") or notificacao.get("topic") or query.get("type") or query.get("topic")
    acao = notificacao.get("action") or ""
    return tipo == "payment" or str(acao).startswith("payment.")


def resolver_email(pagamento):
    """
    Email do comprador, por prioridade: external_reference (JSON do checkout),
    metadata e, por último, o payer do pagamento. Retorna (email, referencia).
    """
    referencia = {}
    bruto = pagamento.get("external_reference")
    if bruto:
        try:
            referencia = _como_dict(json.loads(bruto))
        except (TypeError, ValueError):
            logger.warning("⚠️ external_reference não é JSON: %r", bruto)

    metadata = _como_dict(pagamento.get("metadata"))
    payer = _como_dict(pagamento.get("payer"))
    for candidato in (referencia.get("email"), metadata.get("email"), payer.get("email")):
        email = normalizar_email(candidato)
        if email:
            return email, referencia
    return None, referencia


class ReconciliadorPagamentos:
    """Transforma uma notificação de pagamento em estado VIP, uma vez por payment_id"""

    def __init__(self, repositorio, cliente_mp, relogio=agora_utc):
        self.repositorio = repositorio
        self.cliente_mp = cliente_mp
        self.relogio = relogio

    def processar(self, notificacao, query=None):
        notificacao = _como_dict(notificacao)

        if not e_evento_de_pagamento(notificacao, query):
            evento = notificacao.get("action") or notificacao.get("type") or notificacao.get("topic")
            logger.info("ℹ️ Evento ignorado: %s", evento)
            return {"message": "Evento ignorado"}

        payment_id = extrair_payment_id(notificacao, query)
        if not payment_id:
            logger.warning("❌ Payment ID não encontrado na notificação")
            raise RequisicaoInvalida("Payment ID não encontrado")

        pagamento = self.cliente_mp.buscar_pagamento(payment_id)

        status = pagamento.get("status")
        if status != "approved":
            logger.info("⏳ Pagamento %s ainda não aprovado, status: %s", payment_id, status)
            return {"message": "Pagamento ainda não aprovado", "status": status}

        email, referencia = resolver_email(pagamento)
        if not email:
            logger.warning("❌ Email não encontrado em nenhuma fonte (pagamento %s)", payment_id)
            raise RequisicaoInvalida("email not found")

        metadata = _como_dict(pagamento.get("metadata"))
        token_plano = referencia.get("planType") or metadata.get("plan_type") or metadata.get("planType")
        valor = pagamento.get("transaction_amount") or pagamento.get("total_paid_amount")
        plano, dias = resolver_plano(token_plano, valor)

        existente = self.repositorio.buscar_pagamento(payment_id)
        if existente and existente.processado:
            logger.info("⚠️ Pagamento %s já processado anteriormente", payment_id)
            return {"message": "Pagamento já foi processado com sucesso", "duplicate": True}

        agora = self.relogio()
        perfil = self.repositorio.buscar_perfil(email)
        if perfil is None:
            logger.info("👤 Usuário não encontrado, criando perfil convidado para %s", email)
            perfil = self.repositorio.criar_perfil_convidado(email, agora)

        assinatura_atual = self.repositorio.buscar_assinatura(email)
        candidatos = []
        if perfil.is_vip and perfil.vip_expira_em:
            candidatos.append(perfil.vip_expira_em)
        if assinatura_atual and assinatura_atual.pagamento_aprovado:
            candidatos.append(assinatura_atual.data_expiracao)
        expiracao_atual = max(candidatos) if candidatos else None

        inicio, fim = calcular_periodo(agora, expiracao_atual, dias)
        if expiracao_atual and expiracao_atual > agora:
            logger.info("🔄 %s já é VIP, estendendo a partir de %s", email, para_iso(expiracao_atual))

        registro = RegistroPagamento.de_pagamento_mp(pagamento, user_id=perfil.id, recebido_em=agora)
        registro.payment_id = payment_id
        assinatura = AssinaturaVIP(
            email=email,
            plano=plano,
            data_inicio=inicio,
            data_expiracao=fim,
            pagamento_aprovado=True,
            payment_id=payment_id,
        )

        if not self.repositorio.registrar_pagamento_aprovado(registro, perfil, assinatura):
            logger.info("⚠️ Pagamento %s processado por outra entrega simultânea", payment_id)
            return {"message": "Pagamento já foi processado com sucesso", "duplicate": True}

        logger.info("🎉 VIP ATIVADO: %s plano=%s até %s (pagamento %s, R$ %s)",
                    email, plano, fim.date(), payment_id, registro.valor)
        return {
            "success": True,
            "message": "VIP ativado com sucesso!",
            "data": {
                "email": email,
                "user_id": perfil.id,
                "plano": plano,
                "expira_em": para_iso(fim),
                "payment_id": payment_id,
                "amount": registro.valor,
            },
        }
