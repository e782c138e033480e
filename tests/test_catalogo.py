import json

import pytest

from catalogo import (
    PoliticaCotaLinha,
    PoliticaCotaMarca,
    PoliticaPercentual,
    PoliticaPrefixo,
    criar_politica,
    detectar_marca,
    filtrar_catalogo,
)
from catalogo_data import carregar_de_arquivo, criar_catalogo_inicial
from modelos import Pelicula


@pytest.fixture
def itens():
    return criar_catalogo_inicial()


@pytest.mark.parametrize("modelo, marca", [
    ("iPhone 13 Pro Max", "iphone"),
    ("Xiaomi Redmi Note 8", "xiaomi"),
    ("Poco X3", "xiaomi"),
    ("Moto G20", "motorola"),
    ("Samsung Galaxy A10", "samsung"),
    ("A32 4G", "samsung"),
    ("LG K10", "outras"),
])
def test_detectar_marca(modelo, marca):
    assert detectar_marca(modelo) == marca


def test_politica_prefixo(itens):
    assert PoliticaPrefixo(3).selecionar(itens) == itens[:3]


def test_politica_percentual_arredonda_para_cima(itens):
    politica = PoliticaPercentual(10)
    assert politica.limite(itens) == 3
    assert politica.selecionar(itens) == itens[:3]


def test_politica_cota_marca(itens):
    politica = PoliticaCotaMarca({"samsung": 1, "iphone": 1}, total=3)

    selecionados = politica.selecionar(itens)

    assert [p.modelo for p in selecionados] == ["Samsung Galaxy A10", "iPhone 11", "Moto G7 Power"]


def test_politica_cota_marca_padrao_respeita_total(itens):
    politica = PoliticaCotaMarca()
    selecionados = politica.selecionar(itens * 5)
    assert len(selecionados) == 49


def test_politica_cota_linha(itens):
    selecionados = PoliticaCotaLinha(1).selecionar(itens)
    assert [p.linha for p in selecionados] == [
        "peliculas", "telas", "capas", "baterias", "conectores_v8", "conectores_typec",
    ]
    assert PoliticaCotaLinha(1).limite(itens) == 6


def test_criar_politica_desconhecida():
    with pytest.raises(ValueError):
        criar_politica("aleatoria")


def test_vip_ve_tudo_que_corresponde_a_busca(itens):
    resultado = filtrar_catalogo(itens, True, "iphone")
    assert len(resultado) == 4
    assert len(filtrar_catalogo(itens, True, "")) == len(itens)


@pytest.mark.parametrize("busca", ["", "moto", "iphone", "G7", "REDMI", "zenfone", "xyz"])
def test_nao_vip_nunca_passa_do_subconjunto(itens, busca):
    politica = PoliticaPrefixo(3)
    permitido = politica.selecionar(itens)

    resultado = filtrar_catalogo(itens, False, busca, politica)

    assert len(resultado) <= politica.limite(itens)
    assert all(item in permitido for item in resultado)


def test_busca_nao_vip_aplicada_depois_da_selecao(itens):
    politica = PoliticaPrefixo(3)
    assert filtrar_catalogo(itens, False, "Poco X3", politica) == []
    assert len(filtrar_catalogo(itens, True, "Poco X3", politica)) == 1


def test_busca_em_compatibilidade():
    item = Pelicula("Samsung Galaxy A20", "A20 / A30 / A50")
    assert item.corresponde("a50")
    assert not item.corresponde("a70")


def test_catalogo_inicial_marca_premium(itens):
    assert [p.is_premium for p in itens[:3]] == [False, False, False]
    assert all(p.is_premium for p in itens[3:])


def test_carregar_de_arquivo(tmp_path):
    arquivo = tmp_path / "peliculas.json"
    arquivo.write_text(json.dumps([
        {"modelo": "Moto G20", "compatibilidade": "G20 / G30"},
        {"modelo": "Moto E7", "compatibilidade": "E7 / E7 Power", "linha": "telas"},
    ]), encoding="utf-8")

    itens = carregar_de_arquivo(str(arquivo))

    assert [(p.modelo, p.linha) for p in itens] == [("Moto G20", "peliculas"), ("Moto E7", "telas")]
    assert itens[0].is_premium is False
    assert itens[1].is_premium is True


def test_carregar_de_arquivo_invalido(tmp_path):
    arquivo = tmp_path / "peliculas.json"
    arquivo.write_text(json.dumps([{"modelo": "Moto G20", "compatibilidade": "G20", "linha": "cabos"}]))
    with pytest.raises(ValueError):
        carregar_de_arquivo(str(arquivo))

    arquivo.write_text(json.dumps({"modelo": "Moto G20"}))
    with pytest.raises(ValueError):
        carregar_de_arquivo(str(arquivo))


def test_nao_vip_filtro_de_linha_depois_da_selecao(itens):
    politica = PoliticaPrefixo(3)
    permitido = politica.selecionar(itens)

    assert filtrar_catalogo(itens, False, "", politica, linha="telas") == []
    por_linha = filtrar_catalogo(itens, False, "", politica, linha="peliculas")
    assert por_linha == permitido
    assert [p.linha for p in filtrar_catalogo(itens, True, "", politica, linha="telas")] == ["telas", "telas"]
