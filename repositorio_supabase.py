# repositorio_supabase.py
import logging
import uuid

from postgrest.exceptions import APIError
from supabase import create_client

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

VIOLACAO_UNICIDADE = "23505"
TAMANHO_LOTE = 100


class RepositorioSupabase(RepositorioVIP):
    """
    Tabelas no Supabase (Postgres) acessadas com a service role key.

    A API REST não oferece transação entre tabelas: o pagamento é reivindicado
    primeiro (restrição UNIQUE em vip_payments.payment_id) e, se a atualização
    do perfil ou da assinatura falhar, o perfil volta ao estado anterior e a
    reivindicação é desfeita, para que a reentrega do Mercado Pago reprocesse
    tudo a partir da mesma expiração.
    """

    def __init__(self, client):
        self.client = client

    @classmethod
    def conectar(cls, url, service_key):
        logger.info("🔌 Conectando ao Supabase (service role): %s", url)
        return cls(create_client(url, service_key))

    def _executar(self, consulta, descricao):
        try:
            return consulta.execute()
        except APIError as e:
            raise ErroUpstream(f"Erro no Supabase ao {descricao}", e.message)
        except Exception as e:
            raise ErroUpstream(f"Erro no Supabase ao {descricao}", str(e))

    def _primeiro(self, resposta):
        dados = resposta.data or []
        return dados[0] if dados else None

    # ========== PERFIS ==========

    def buscar_perfil(self, email):
        resposta = self._executar(
            self.client.table("profiles").select("*").eq("email", normalizar_email(email)).limit(1),
            "buscar perfil",
        )
        row = self._primeiro(resposta)
        return Perfil.from_dict(row) if row else None

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
        try:
            self.client.table("profiles").insert(perfil.to_dict()).execute()
        except APIError as e:
            if e.code != VIOLACAO_UNICIDADE:
                raise ErroUpstream("Erro ao criar perfil do usuário", e.message)
            # Outra requisição criou o perfil ao mesmo tempo
            return self.buscar_perfil(email)
        except Exception as e:
            raise ErroUpstream("Erro ao criar perfil do usuário", str(e))
        return perfil

    # ========== ASSINATURAS / PAGAMENTOS ==========

    def buscar_assinatura(self, email):
        resposta = self._executar(
            self.client.table("usuarios_vip").select("*").eq("email", normalizar_email(email)).limit(1),
            "buscar assinatura VIP",
        )
        row = self._primeiro(resposta)
        return AssinaturaVIP.from_dict(row) if row else None

    def buscar_pagamento(self, payment_id):
        resposta = self._executar(
            self.client.table("vip_payments").select("*").eq("payment_id", str(payment_id)).limit(1),
            "buscar pagamento",
        )
        row = self._primeiro(resposta)
        return RegistroPagamento.from_dict(row) if row else None

    def _reivindicar_pagamento(self, pagamento, perfil):
        dados = pagamento.to_dict()
        dados.update({"user_id": perfil.id, "processed": True})

        resposta = self._executar(
            self.client.table("vip_payments")
            .update(dados)
            .eq("payment_id", pagamento.payment_id)
            .eq("processed", False),
            "registrar pagamento",
        )
        if resposta.data:
            return True

        try:
            self.client.table("vip_payments").insert(dados).execute()
        except APIError as e:
            if e.code == VIOLACAO_UNICIDADE:
                return False
            raise ErroUpstream("Erro ao registrar pagamento", e.message)
        except Exception as e:
            raise ErroUpstream("Erro ao registrar pagamento", str(e))
        return True

    def _restaurar_perfil(self, perfil):
        """Volta o perfil ao estado lido antes da reivindicação"""
        try:
            self.client.table("profiles").update({
                "is_vip": perfil.is_vip,
                "vip_expires_at": para_iso(perfil.vip_expira_em),
                "updated_at": para_iso(perfil.atualizado_em),
            }).eq("id", perfil.id).execute()
        except Exception:
            logger.exception("❌ Falha ao restaurar o perfil %s", perfil.id)

    def _liberar_pagamento(self, payment_id):
        try:
            self.client.table("vip_payments").update({"processed": False}).eq("payment_id", payment_id).execute()
        except Exception:
            logger.exception("❌ Falha ao desfazer reivindicação do pagamento %s", payment_id)

    def registrar_pagamento_aprovado(self, pagamento, perfil, assinatura):
        if not self._reivindicar_pagamento(pagamento, perfil):
            return False

        try:
            self._executar(
                self.client.table("profiles").update({
                    "is_vip": True,
                    "vip_expires_at": para_iso(assinatura.data_expiracao),
                    "updated_at": para_iso(assinatura.data_inicio),
                }).eq("id", perfil.id),
                "ativar VIP no perfil",
            )
            dados_vip = assinatura.to_dict()
            dados_vip["email"] = normalizar_email(assinatura.email)
            self._executar(
                self.client.table("usuarios_vip").upsert(dados_vip, on_conflict="email"),
                "gravar usuarios_vip",
            )
        except ErroUpstream:
            logger.error("❌ Gravação VIP incompleta para %s; liberando pagamento %s para reentrega",
                         assinatura.email, pagamento.payment_id)
            self._restaurar_perfil(perfil)
            self._liberar_pagamento(pagamento.payment_id)
            raise
        return True

    # ========== CATÁLOGO ==========

    def listar_catalogo(self, linha=None):
        consulta = self.client.table("peliculas_3d").select("*")
        if linha:
            consulta = consulta.eq("linha", linha)
        resposta = self._executar(consulta.order("id"), "listar catálogo")
        return [Pelicula.from_dict(row) for row in resposta.data or []]

    def importar_catalogo(self, itens):
        linhas = [
            {
                "modelo": p.modelo,
                "compatibilidade": p.compatibilidade,
                "is_premium": p.is_premium,
                "linha": p.linha,
            }
            for p in itens
        ]
        for inicio in range(0, len(linhas), TAMANHO_LOTE):
            lote = linhas[inicio:inicio + TAMANHO_LOTE]
            self._executar(self.client.table("peliculas_3d").insert(lote), "importar catálogo")
            logger.info("✅ Inseridos %d registros (total: %d)", len(lote), inicio + len(lote))
        return len(linhas)

    def verificar_conexao(self):
        try:
            self._executar(self.client.table("peliculas_3d").select("id").limit(1), "verificar conexão")
            return True
        except ErroUpstream:
            return False
