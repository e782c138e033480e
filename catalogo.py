# catalogo.py
import logging
import math
import re
from collections import OrderedDict

logger = logging.getLogger(__name__)

MENSAGEM_VIP = "Acesso VIP: dados completos disponíveis"
MENSAGEM_LIMITADA = "Acesso limitado: apenas parte dos dados. Assine o VIP para acesso completo!"

# Ordem importa: "redmi note" é Xiaomi, não Samsung
PADROES_MARCA = OrderedDict([
    ("iphone", re.compile(r"iphone|apple")),
    ("xiaomi", re.compile(r"xiaomi|redmi|poco|\bmi\s")),
    ("motorola", re.compile(r"motorola|\bmoto")),
    ("samsung", re.compile(r"samsung|galaxy|\bsm-|\b[ajms]\d{2}s?\b|\bnote\s?\d*\b")),
])

COTAS_MARCA_PADRAO = {"samsung": 15, "iphone": 15, "motorola": 10, "xiaomi": 9}
TOTAL_COTA_MARCA = 49


def detectar_marca(modelo):
    texto = (modelo or "").lower()
    for marca, padrao in PADROES_MARCA.items():
        if padrao.search(texto):
            return marca
    return "outras"


class PoliticaSelecao:
    """Escolhe o subconjunto do catálogo visível para quem não é VIP"""

    nome = "base"

    def selecionar(self, itens):
        raise NotImplementedError

    def limite(self, itens):
        """Número máximo de itens que selecionar() pode devolver para este catálogo"""
        raise NotImplementedError


class PoliticaPrefixo(PoliticaSelecao):
    nome = "prefixo"

    def __init__(self, n=10):
        self.n = max(0, int(n))

    def selecionar(self, itens):
        return list(itens)[:self.n]

    def limite(self, itens):
        return self.n


class PoliticaPercentual(PoliticaSelecao):
    nome = "percentual"

    def __init__(self, percentual=10):
        self.percentual = min(100, max(0, int(percentual)))

    def limite(self, itens):
        return math.ceil(len(itens) * self.percentual / 100)

    def selecionar(self, itens):
        itens = list(itens)
        return itens[:self.limite(itens)]


class PoliticaCotaMarca(PoliticaSelecao):
    """Cotas por marca; vagas que sobrarem vão para as demais marcas"""

    nome = "cota_marca"

    def __init__(self, cotas=None, total=TOTAL_COTA_MARCA):
        self.cotas = dict(cotas or COTAS_MARCA_PADRAO)
        self.total = int(total)

    def limite(self, itens):
        return self.total

    def selecionar(self, itens):
        grupos = {marca: [] for marca in list(self.cotas) + ["outras"]}
        for indice, item in enumerate(itens):
            marca = detectar_marca(item.modelo)
            grupos[marca if marca in grupos else "outras"].append((indice, item))

        logger.debug("📊 Distribuição de marcas: %s", {m: len(g) for m, g in grupos.items()})

        selecionados = []
        for marca, cota in self.cotas.items():
            selecionados.extend(grupos.get(marca, [])[:cota])
        selecionados = selecionados[:self.total]

        restantes = self.total - len(selecionados)
        if restantes > 0:
            selecionados.extend(grupos["outras"][:restantes])
        # mantém a ordem original do catálogo
        return [item for _, item in sorted(selecionados, key=lambda par: par[0])]


class PoliticaCotaLinha(PoliticaSelecao):
    """Primeiros itens de cada linha de produto (películas, telas, capas...)"""

    nome = "cota_linha"

    def __init__(self, cota=10):
        self.cota = max(0, int(cota))

    def limite(self, itens):
        return self.cota * len({item.linha for item in itens})

    def selecionar(self, itens):
        contagem = {}
        selecionados = []
        for item in itens:
            usados = contagem.get(item.linha, 0)
            if usados < self.cota:
                selecionados.append(item)
                contagem[item.linha] = usados + 1
        return selecionados


def criar_politica(nome, limite=10, percentual=10):
    if nome == "prefixo":
        return PoliticaPrefixo(limite)
    if nome == "percentual":
        return PoliticaPercentual(percentual)
    if nome == "cota_linha":
        return PoliticaCotaLinha(limite)
    if nome == "cota_marca":
        return PoliticaCotaMarca()
    raise ValueError(f"Política de catálogo desconhecida: {nome}")


def filtrar_catalogo(itens, is_vip, busca="", politica=None, linha=None):
    """
    Retorna os itens visíveis ao solicitante.

    Para não-VIP o subconjunto é escolhido sobre o catálogo inteiro, antes do
    filtro de linha e da busca, então nenhum filtro amplia o que pode ser visto.
    """
    itens = list(itens)
    if not is_vip:
        politica = politica or PoliticaCotaMarca()
        itens = politica.selecionar(itens)
        logger.info("🔒 Usuário não-VIP: política %s, %d registros elegíveis", politica.nome, len(itens))

    if linha:
        itens = [item for item in itens if item.linha == linha]
    if busca and busca.strip():
        itens = [item for item in itens if item.corresponde(busca)]
    return itens
