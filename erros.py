# erros.py


class ErroConfiguracao(Exception):
    """Variável de ambiente obrigatória ausente ou inválida"""


class ErroAplicacao(Exception):
    status = 500
    mensagem = "Erro interno do servidor"

    def __init__(self, mensagem=None, detalhe=None):
        self.mensagem = mensagem or self.mensagem
        self.detalhe = detalhe
        super().__init__(self.mensagem)

    def to_dict(self):
        corpo = {"error": self.mensagem}
        if self.detalhe:
            corpo["detail"] = self.detalhe
        return corpo


class RequisicaoInvalida(ErroAplicacao):
    status = 400
    mensagem = "Requisição inválida"


class NaoEncontrado(ErroAplicacao):
    status = 404
    mensagem = "Não encontrado"


class ErroUpstream(ErroAplicacao):
    """Mercado Pago ou banco de dados não responderam como esperado"""
    status = 502
    mensagem = "Erro ao comunicar com serviço externo"

