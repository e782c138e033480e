from datetime import timedelta

from catalogo_data import criar_catalogo_inicial
from modelos import AssinaturaVIP, RegistroPagamento


def test_perfil_convidado_unico_por_email(repo, relogio):
    primeiro = repo.criar_perfil_convidado("Cliente@Exemplo.com", relogio())
    segundo = repo.criar_perfil_convidado("cliente@exemplo.com", relogio())

    assert primeiro.id == segundo.id
    assert primeiro.nome == "cliente"
    assert repo.buscar_perfil("CLIENTE@exemplo.com").is_vip is False


def test_pagamento_so_e_reivindicado_uma_vez(repo, relogio):
    perfil = repo.criar_perfil_convidado("cliente@exemplo.com", relogio())
    assinatura = AssinaturaVIP("cliente@exemplo.com", "monthly", relogio(), relogio() + timedelta(days=30))
    registro = RegistroPagamento(payment_id="1", valor=7.70, dados_processador={"id": 1}, recebido_em=relogio())

    assert repo.registrar_pagamento_aprovado(registro, perfil, assinatura) is True

    outra = AssinaturaVIP("cliente@exemplo.com", "yearly", relogio(), relogio() + timedelta(days=365))
    assert repo.registrar_pagamento_aprovado(registro, perfil, outra) is False
    assert repo.buscar_assinatura("cliente@exemplo.com").plano == "monthly"

    salvo = repo.buscar_pagamento("1")
    assert salvo.processado is True
    assert salvo.dados_processador == {"id": 1}


def test_pagamento_nao_processado_pode_ser_reivindicado(repo, relogio):
    perfil = repo.criar_perfil_convidado("cliente@exemplo.com", relogio())
    with repo.transacao() as cursor:
        cursor.execute("INSERT INTO vip_payments (payment_id, processed) VALUES ('2', 0)")
    assinatura = AssinaturaVIP("cliente@exemplo.com", "monthly", relogio(), relogio() + timedelta(days=30))

    assert repo.registrar_pagamento_aprovado(RegistroPagamento(payment_id="2"), perfil, assinatura) is True
    assert repo.buscar_pagamento("2").user_id == perfil.id


def test_catalogo(repo):
    assert repo.importar_catalogo(criar_catalogo_inicial()) == 22
    assert repo.contar_catalogo() == 22

    baterias = repo.listar_catalogo("baterias")
    assert [p.modelo for p in baterias] == ["Moto G8 Power"]
    assert baterias[0].is_premium is True
    assert repo.listar_catalogo()[0].is_premium is False


def test_verificar_conexao(repo):
    assert repo.verificar_conexao() is True
