from datetime import timedelta

from erros import ErroUpstream
from modelos import AssinaturaVIP, RegistroPagamento
from vip import StatusVIP, consultar_vip, usuario_e_vip


def _ativar(repo, email, inicio, dias, plano="monthly", payment_id="9001"):
    perfil = repo.buscar_perfil(email) or repo.criar_perfil_convidado(email, inicio)
    assinatura = AssinaturaVIP(
        email=email,
        plano=plano,
        data_inicio=inicio,
        data_expiracao=inicio + timedelta(days=dias),
        payment_id=payment_id,
    )
    registro = RegistroPagamento(payment_id=payment_id, valor=7.70, recebido_em=inicio)
    assert repo.registrar_pagamento_aprovado(registro, perfil, assinatura)
    return assinatura


def test_sem_registro_nao_e_vip(repo, relogio):
    assert consultar_vip(repo, "ninguem@exemplo.com", relogio()) == StatusVIP()
    assert usuario_e_vip(repo, "", relogio()) is False


def test_assinatura_ativa(repo, relogio):
    assinatura = _ativar(repo, "vip@exemplo.com", relogio(), 90, plano="quarterly")

    status = consultar_vip(repo, "  VIP@Exemplo.com ", relogio())

    assert status.is_vip is True
    assert status.plano == "quarterly"
    assert status.to_dict() == {
        "isVIP": True,
        "plano": "quarterly",
        "expiresAt": assinatura.data_expiracao.isoformat(),
    }


def test_assinatura_expirada(repo, relogio):
    _ativar(repo, "vip@exemplo.com", relogio(), 30)
    relogio.avancar(31)

    assert usuario_e_vip(repo, "vip@exemplo.com", relogio()) is False


def test_vip_manual_no_perfil_sem_expiracao(repo, relogio):
    perfil = repo.criar_perfil_convidado("manual@exemplo.com", relogio())
    with repo.transacao() as cursor:
        cursor.execute("UPDATE profiles SET is_vip = 1 WHERE id = ?", (perfil.id,))

    status = consultar_vip(repo, "manual@exemplo.com", relogio())

    assert status.is_vip is True
    assert status.expira_em is None


def test_consulta_nao_grava_nada(repo, relogio):
    consultar_vip(repo, "novo@exemplo.com", relogio())
    assert repo.buscar_perfil("novo@exemplo.com") is None


def test_erro_no_banco_resulta_em_nao_vip(relogio):
    class RepositorioQuebrado:
        def buscar_assinatura(self, email):
            raise ErroUpstream("Erro no banco de dados", "database is locked")

    assert usuario_e_vip(RepositorioQuebrado(), "vip@exemplo.com", relogio()) is False


def test_assinatura_expirada_ignora_flag_permanente_do_perfil(repo, relogio):
    _ativar(repo, "vip@exemplo.com", relogio(), 30)
    perfil = repo.buscar_perfil("vip@exemplo.com")
    with repo.transacao() as cursor:
        cursor.execute("UPDATE profiles SET is_vip = 1, vip_expires_at = NULL WHERE id = ?", (perfil.id,))
    relogio.avancar(31)

    assert usuario_e_vip(repo, "vip@exemplo.com", relogio()) is False
