# catalogo_data.py
import json
import math

from modelos import LINHAS_CATALOGO, Pelicula

PERCENTUAL_GRATUITO = 10


def criar_catalogo_inicial():
    """Amostra do catálogo de compatibilidade para o banco local de desenvolvimento"""
    dados = [
        ("peliculas", "Samsung Galaxy A10", "A10 / M10 / A10S / M10S"),
        ("peliculas", "Samsung Galaxy A20", "A20 / A30 / A50 / A30S / A50S / M30"),
        ("peliculas", "Samsung Galaxy S20 FE", "S20 FE / A71 / M51 / Note 10 Lite"),
        ("peliculas", "Samsung Galaxy J7 Prime", "J7 Prime / J7 Prime 2 / On7 2016"),
        ("peliculas", "iPhone 11", "iPhone 11 / iPhone XR"),
        ("peliculas", "iPhone 12", "iPhone 12 / iPhone 12 Pro"),
        ("peliculas", "iPhone 13 Pro Max", "iPhone 13 Pro Max / iPhone 14 Plus"),
        ("peliculas", "Moto G7 Power", "G7 Power / G7 Play / One Vision"),
        ("peliculas", "Moto G20", "G20 / G30 / G10 / E7 Plus"),
        ("peliculas", "Moto G60", "G60 / G60S / G40 Fusion"),
        ("peliculas", "Xiaomi Redmi Note 8", "Redmi Note 8 / Redmi Note 8T"),
        ("peliculas", "Xiaomi Redmi 9", "Redmi 9 / Redmi 9A / Redmi 9C / Poco M2"),
        ("peliculas", "Xiaomi Poco X3", "Poco X3 / Poco X3 Pro / Mi 10T"),
        ("peliculas", "LG K10", "K10 / K8 / K5 / K4"),
        ("peliculas", "Asus Zenfone 5", "Zenfone 5 / Zenfone 5Z"),
        ("telas", "Samsung Galaxy A02S", "A02S / A03S / M02S"),
        ("telas", "Moto E7", "E7 / E7 Power / E7 Plus"),
        ("capas", "iPhone 11", "iPhone 11"),
        ("capas", "Samsung Galaxy A32", "A32 4G"),
        ("baterias", "Moto G8 Power", "G8 Power / bateria KZ40"),
        ("conectores_v8", "Moto G7 Power", "Conector de carga G7 Power / G9 Play / One Fusion"),
        ("conectores_typec", "Moto G8 Plus", "Carga tipo C G8 / G8 Plus / One Action / One Vision"),
    ]
    return marcar_premium([Pelicula(modelo=m, compatibilidade=c, linha=linha) for linha, m, c in dados])


def marcar_premium(itens, percentual_gratuito=PERCENTUAL_GRATUITO):
    """Os primeiros X% ficam gratuitos; o restante é marcado como premium"""
    corte = math.ceil(len(itens) * percentual_gratuito / 100)
    for indice, item in enumerate(itens):
        item.is_premium = indice >= corte
    return itens


def carregar_de_arquivo(caminho_arquivo, linha_padrao="peliculas"):
    """Lê [{modelo, compatibilidade, linha?}] de um arquivo JSON"""
    with open(caminho_arquivo, 'r', encoding='utf-8') as f:
        dados = json.load(f)

    if not isinstance(dados, list):
        raise ValueError("O arquivo deve conter uma lista de itens")

    itens = []
    for posicao, item in enumerate(dados):
        modelo = (item.get("modelo") or "").strip()
        compatibilidade = (item.get("compatibilidade") or "").strip()
        if not modelo or not compatibilidade:
            raise ValueError(f"Item {posicao} sem modelo ou compatibilidade")
        linha = item.get("linha") or linha_padrao
        if linha not in LINHAS_CATALOGO:
            raise ValueError(f"Item {posicao} com linha desconhecida: {linha}")
        itens.append(Pelicula(modelo=modelo, compatibilidade=compatibilidade, linha=linha))
    return marcar_premium(itens)
