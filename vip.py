# vip.py
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from modelos import agora_utc, normalizar_email, para_iso

logger = logging.getLogger(__name__)


@dataclass
class StatusVIP:
    is_vip: bool = False
    plano: Optional[str] = None
    expira_em: Optional[datetime] = None

    def to_dict(self):
        return {
            "isVIP": self.is_vip,
            "plano": self.plano,
            "expiresAt": para_iso(self.expira_em),
        }


def consultar_vip(repositorio, email, agora=None) -> StatusVIP:
    """
    Verifica se o email tem VIP ativo.

    A tabela usuarios_vip é consultada primeiro; só quando o email
    não tem nenhum registro nela as flags do perfil (is_vip / vip_expires_at)
    são lidas como alternativa.
    Não grava nada. Qualquer erro de leitura resulta em não-VIP.
    """
    email = normalizar_email(email)
    if not email:
        return StatusVIP()
    agora = agora or agora_utc()

    try:
        assinatura = repositorio.buscar_assinatura(email)
        if assinatura and assinatura.ativa(agora):
            logger.info("👑 VIP ativo para %s até %s", email, assinatura.data_expiracao.date())
            return StatusVIP(True, assinatura.plano, assinatura.data_expiracao)

        # o perfil só vale quando não existe registro em usuarios_vip
        perfil = repositorio.buscar_perfil(email) if assinatura is None else None
        if perfil and perfil.vip_ativo(agora):
            logger.info("👑 VIP encontrado no perfil de %s", email)
            return StatusVIP(True, None, perfil.vip_expira_em)
    except Exception:
        logger.exception("❌ Erro ao verificar VIP para %s", email)
        return StatusVIP()

    if assinatura:
        logger.info("⏰ VIP expirado para %s em %s", email, assinatura.data_expiracao.date())
    return StatusVIP()


def usuario_e_vip(repositorio, email, agora=None) -> bool:
    return consultar_vip(repositorio, email, agora).is_vip
