# apimercadopago.py
import json
import logging
import time

import mercadopago

from erros import ErroUpstream
from planos import PLANOS

logger = logging.getLogger(__name__)


def ambiente_do_token(access_token):
    """Identifica produção ou sandbox pelo prefixo do token"""
    if not access_token:
        return "NÃO CONFIGURADO"
    if access_token.startswith('APP_USR-'):
        return "PRODUÇÃO"
    if access_token.startswith('TEST-'):
        return "SANDBOX"
    return "DESCONHECIDO"


class ClienteMercadoPago:
    """Wrapper do SDK oficial: preferências de checkout VIP e consulta de pagamentos"""

    def __init__(self, access_token, base_url, notification_url=None, sdk=None):
        self.access_token = access_token
        self.base_url = (base_url or '').rstrip('/')
        self.notification_url = notification_url or f"{self.base_url}/webhook/mercado_pago"
        self.sdk = sdk or mercadopago.SDK(access_token)

    def ambiente(self):
        return ambiente_do_token(self.access_token)

    def buscar_pagamento(self, payment_id):
        """Consulta /v1/payments/{id}; o status da notificação não é confiável"""
        logger.info("🔍 Consultando pagamento no Mercado Pago: %s", payment_id)
        try:
            result = self.sdk.payment().get(payment_id)
        except Exception as e:
            logger.error("❌ Exceção ao consultar pagamento %s: %s", payment_id, e)
            raise ErroUpstream("Erro ao consultar pagamento", str(e))

        status = result.get('status') if isinstance(result, dict) else None
        if status != 200:
            logger.error("❌ Erro ao consultar pagamento no MP: status %s - %s",
                         status, result.get('response') if isinstance(result, dict) else result)
            raise ErroUpstream("Erro ao consultar pagamento", f"Mercado Pago respondeu status {status}")

        pagamento = result.get('response') or {}
        logger.info("💳 Pagamento %s: status=%s valor=%s",
                    pagamento.get('id'), pagamento.get('status'),
                    pagamento.get('transaction_amount') or pagamento.get('total_paid_amount'))
        return pagamento

    def criar_preferencia_vip(self, plano, email, user_id=None):
        """
        Cria uma preferência de pagamento para um plano VIP.

        O plano e o email vão em external_reference (JSON) e em metadata para
        que o webhook consiga identificar o comprador mesmo em checkout sem login.
        """
        dados_plano = PLANOS[plano]
        ambiente = self.ambiente()
        timestamp = int(time.time() * 1000)

        payment_data = {
            "items": [
                {
                    "id": f"vip_{plano}",
                    "title": dados_plano["title"],
                    "quantity": 1,
                    "unit_price": dados_plano["price"],
                    "currency_id": "BRL",
                }
            ],
            "payer": {"email": email},
            "back_urls": {
                "success": f"{self.base_url}/checkout/success",
                "failure": f"{self.base_url}/checkout/failure",
                "pending": f"{self.base_url}/checkout/pending",
            },
            "auto_return": "approved",
            "notification_url": self.notification_url,
            "external_reference": json.dumps({
                "planType": plano,
                "email": email,
                "userId": user_id,
                "timestamp": timestamp,
            }),
            "metadata": {
                "email": email,
                "plan_type": plano,
                "user_id": user_id,
            },
        }

        logger.info("🛒 Criando preferência VIP (%s) para %s - ambiente %s", plano, email, ambiente)
        try:
            result = self.sdk.preference().create(payment_data)
        except Exception as e:
            logger.error("❌ Exceção ao criar preferência: %s", e)
            raise ErroUpstream("Erro ao criar preferência", str(e))

        if result.get('status') != 201:
            logger.error("❌ Erro Mercado Pago: status %s - %s", result.get('status'), result.get('response'))
            raise ErroUpstream("Erro ao criar preferência", f"Mercado Pago respondeu status {result.get('status')}")

        response_data = result.get('response', {})
        init_point = response_data.get('init_point')
        sandbox_init_point = response_data.get('sandbox_init_point')

        # Produção usa init_point; sandbox usa sandbox_init_point (com fallback cruzado)
        if ambiente == "PRODUÇÃO":
            url_pagamento = init_point or sandbox_init_point
        else:
            url_pagamento = sandbox_init_point or init_point

        if not url_pagamento:
            logger.error("❌ Nenhuma URL de pagamento na resposta da preferência %s", response_data.get('id'))
            raise ErroUpstream("Erro ao criar preferência", "URL de pagamento não encontrada")

        logger.info("✅ Preferência criada com sucesso: %s", response_data.get('id'))
        return {"init_point": url_pagamento, "id": response_data.get('id')}
