# repositorio.py
from typing import Iterable, List, Optional

from modelos import AssinaturaVIP, Perfil, Pelicula, RegistroPagamento


class RepositorioVIP:
    """
    Fonte única de verdade para perfis, assinaturas VIP, pagamentos e catálogo.

    Implementações: RepositorioSQLite (desenvolvimento/testes) e
    RepositorioSupabase (produção).
    """

    def buscar_perfil(self, email: str) -> Optional[Perfil]:
        raise NotImplementedError

    def criar_perfil_convidado(self, email: str, agora) -> Perfil:
        raise NotImplementedError

    def buscar_assinatura(self, email: str) -> Optional[AssinaturaVIP]:
        raise NotImplementedError

    def buscar_pagamento(self, payment_id: str) -> Optional[RegistroPagamento]:
        raise NotImplementedError

    def registrar_pagamento_aprovado(self, pagamento: RegistroPagamento,
                                     perfil: Perfil,
                                     assinatura: AssinaturaVIP) -> bool:
        """
        Grava, nesta ordem: auditoria do pagamento (processado), flags VIP do
        perfil e a assinatura em usuarios_vip.

        Retorna False sem alterar nada se outra entrega já processou o mesmo
        payment_id.
        """
        raise NotImplementedError

    def listar_catalogo(self, linha: Optional[str] = None) -> List[Pelicula]:
        raise NotImplementedError

    def importar_catalogo(self, itens: Iterable[Pelicula]) -> int:
        raise NotImplementedError

    def contar_catalogo(self) -> int:
        return len(self.listar_catalogo())

    def verificar_conexao(self) -> bool:
        raise NotImplementedError


def criar_repositorio(config) -> RepositorioVIP:
    if config.usa_supabase:
        from repositorio_supabase import RepositorioSupabase
        return RepositorioSupabase.conectar(config.supabase_url, config.supabase_service_key)
    from repositorio_sqlite import RepositorioSQLite
    repo = RepositorioSQLite(config.database_path)
    repo.init_db()
    return repo
