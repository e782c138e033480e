# modelos.py
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def agora_utc():
    return datetime.now(timezone.utc)


def normalizar_email(email):
    if not email:
        return ""
    return str(email).strip().lower()


def para_datetime(valor):
    """Converte string ISO-8601 (SQLite/Supabase) em datetime com fuso UTC"""
    if valor is None or valor == "":
        return None
    if isinstance(valor, datetime):
        dt = valor
    else:
        texto = str(valor).strip().replace("Z", "+00:00")
        if " " in texto and "T" not in texto:
            texto = texto.replace(" ", "T", 1)
        dt = datetime.fromisoformat(texto)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def para_iso(valor):
    return valor.isoformat() if valor is not None else None


@dataclass
class Perfil:
    id: str
    email: str
    nome: str = ""
    is_vip: bool = False
    vip_expira_em: Optional[datetime] = None
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None

    def vip_ativo(self, agora):
        if not self.is_vip:
            return False
        # VIP concedido manualmente, sem data de expiração
        if self.vip_expira_em is None:
            return True
        return self.vip_expira_em > agora

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.nome,
            "is_vip": self.is_vip,
            "vip_expires_at": para_iso(self.vip_expira_em),
            "created_at": para_iso(self.criado_em),
            "updated_at": para_iso(self.atualizado_em),
        }

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            id=str(data.get("id")),
            email=normalizar_email(data.get("email")),
            nome=data.get("name") or "",
            is_vip=bool(data.get("is_vip")),
            vip_expira_em=para_datetime(data.get("vip_expires_at")),
            criado_em=para_datetime(data.get("created_at")),
            atualizado_em=para_datetime(data.get("updated_at")),
        )


@dataclass
class AssinaturaVIP:
    """Linha da tabela usuarios_vip (uma por email)"""
    email: str
    plano: str
    data_inicio: datetime
    data_expiracao: datetime
    pagamento_aprovado: bool = True
    payment_id: Optional[str] = None
    origem: str = "mercado_pago"

    def ativa(self, agora):
        return bool(self.pagamento_aprovado) and self.data_expiracao > agora

    def to_dict(self):
        return {
            "email": self.email,
            "plano": self.plano,
            "data_inicio": para_iso(self.data_inicio),
            "data_expiracao": para_iso(self.data_expiracao),
            "pagamento_aprovado": self.pagamento_aprovado,
            "payment_id": self.payment_id,
            "origem": self.origem,
        }

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            email=normalizar_email(data.get("email")),
            plano=data.get("plano") or "",
            data_inicio=para_datetime(data.get("data_inicio")),
            data_expiracao=para_datetime(data.get("data_expiracao")),
            pagamento_aprovado=bool(data.get("pagamento_aprovado")),
            payment_id=data.get("payment_id"),
            origem=data.get("origem") or "mercado_pago",
        )


@dataclass
class RegistroPagamento:
    """Auditoria de pagamento (tabela vip_payments); payment_id é a chave de idempotência"""
    payment_id: str
    user_id: Optional[str] = None
    valor: float = 0.0
    moeda: str = "BRL"
    metodo: str = "unknown"
    status: str = "approved"
    dados_processador: dict = field(default_factory=dict)
    processado: bool = False
    recebido_em: Optional[datetime] = None
    id: Optional[int] = None

    def to_dict(self):
        return {
            "payment_id": self.payment_id,
            "user_id": self.user_id,
            "amount": self.valor,
            "currency": self.moeda,
            "payment_method": self.metodo,
            "payment_status": self.status,
            "mercado_pago_data": self.dados_processador,
            "processed": self.processado,
            "received_at": para_iso(self.recebido_em),
        }

    @classmethod
    def from_dict(cls, data: dict):
        dados = data.get("mercado_pago_data") or {}
        if isinstance(dados, str):
            try:
                dados = json.loads(dados)
            except ValueError:
                dados = {}
        return cls(
            id=data.get("id"),
            payment_id=str(data.get("payment_id")),
            user_id=data.get("user_id"),
            valor=float(data.get("amount") or 0),
            moeda=data.get("currency") or "BRL",
            metodo=data.get("payment_method") or "unknown",
            status=data.get("payment_status") or "",
            dados_processador=dados,
            processado=bool(data.get("processed")),
            recebido_em=para_datetime(data.get("received_at")),
        )

    @classmethod
    def de_pagamento_mp(cls, pagamento: dict, user_id=None, recebido_em=None):
        """Monta o registro a partir da resposta de /v1/payments/{id}"""
        valor = pagamento.get("transaction_amount") or pagamento.get("total_paid_amount") or 0
        return cls(
            payment_id=str(pagamento.get("id")),
            user_id=user_id,
            valor=float(valor),
            moeda=pagamento.get("currency_id") or "BRL",
            metodo=pagamento.get("payment_method_id") or pagamento.get("payment_type_id") or "unknown",
            status=pagamento.get("status") or "",
            dados_processador=pagamento,
            recebido_em=recebido_em,
        )


LINHAS_CATALOGO = ("peliculas", "telas", "capas", "baterias", "conectores_v8", "conectores_typec")


class Pelicula:
    """Item do catálogo de compatibilidade (películas, telas, capas, conectores...)"""

    def __init__(self,
                 modelo: str,
                 compatibilidade: str,
                 id: int = None,
                 is_premium: bool = False,
                 linha: str = "peliculas"):
        self.id = id
        self.modelo = modelo
        self.compatibilidade = compatibilidade
        self.is_premium = bool(is_premium)
        self.linha = linha or "peliculas"

    def corresponde(self, busca: str) -> bool:
        """Busca sem diferenciar maiúsculas em modelo e compatibilidade"""
        termo = (busca or "").strip().lower()
        if not termo:
            return True
        return termo in self.modelo.lower() or termo in self.compatibilidade.lower()

    def to_dict(self):
        return {
            "id": self.id,
            "modelo": self.modelo,
            "compatibilidade": self.compatibilidade,
            "is_premium": self.is_premium,
            "linha": self.linha,
        }

    def to_publico(self):
        return {"modelo": self.modelo, "compatibilidade": self.compatibilidade}

    @classmethod
    def from_dict(cls, data: dict):
        return cls(
            id=data.get("id"),
            modelo=data.get("modelo", ""),
            compatibilidade=data.get("compatibilidade", ""),
            is_premium=data.get("is_premium", False),
            linha=data.get("linha", "peliculas"),
        )

    def __eq__(self, other):
        if not isinstance(other, Pelicula):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __str__(self):
        return f"Pelicula({self.id}: {self.modelo})"

    def __repr__(self):
        return self.__str__()
