# app.py - API VIP: checkout Mercado Pago, webhook de pagamentos e catálogo de compatibilidade
import logging
import sys
from datetime import datetime, timezone

import click
from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from apimercadopago import ClienteMercadoPago
from catalogo import MENSAGEM_LIMITADA, MENSAGEM_VIP, criar_politica, filtrar_catalogo
from catalogo_data import carregar_de_arquivo, criar_catalogo_inicial
from config import carregar_configuracao
from erros import ErroAplicacao, ErroConfiguracao, NaoEncontrado, RequisicaoInvalida
from modelos import LINHAS_CATALOGO, agora_utc, normalizar_email
from planos import normalizar_plano
from repositorio import criar_repositorio
from vip import consultar_vip
from webhook import ReconciliadorPagamentos, extrair_payment_id, verificar_assinatura

logger = logging.getLogger(__name__)

PROCESSADORES_SUPORTADOS = ("mercado_pago", "mercadopago")


def configurar_logging(nivel="INFO"):
    logging.basicConfig(
        level=getattr(logging, nivel, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _email_valido(email):
    return bool(email) and '@' in email and '.' in email.split('@')[-1]


def create_app(config=None, repositorio=None, cliente_mp=None, relogio=None):
    config = config or carregar_configuracao()
    configurar_logging(config.log_level)

    app = Flask(__name__)
    app.json.ensure_ascii = False

    # ========== CONFIGURAÇÃO CORS ==========
    CORS(app, resources={
        r"/*": {
            "origins": config.cors_origins,
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization", "x-signature", "x-request-id"]
        }
    })

    repositorio = repositorio or criar_repositorio(config)
    cliente_mp = cliente_mp or ClienteMercadoPago(
        config.mp_access_token, config.webhook_base_url, config.notification_url
    )
    relogio = relogio or agora_utc
    politica = criar_politica(config.catalogo_politica, config.catalogo_limite, config.catalogo_percentual)
    reconciliador = ReconciliadorPagamentos(repositorio, cliente_mp, relogio)

    app.extensions['vip'] = {
        'config': config,
        'repositorio': repositorio,
        'cliente_mp': cliente_mp,
        'politica': politica,
        'reconciliador': reconciliador,
    }

    logger.info("🔄 Inicializando sistema...")
    logger.info("🏦 Banco: %s", "Supabase" if config.usa_supabase else f"SQLite ({config.database_path})")
    logger.info("💳 Mercado Pago: %s", cliente_mp.ambiente())
    logger.info("🔐 Assinatura do webhook: %s", "✅ Sim" if config.mp_webhook_secret else "⚠️ Não verificada")
    logger.info("🔒 Política do catálogo não-VIP: %s", politica.nome)

    # ========== TRATAMENTO DE ERROS ==========

    @app.errorhandler(ErroAplicacao)
    def tratar_erro_aplicacao(erro):
        return jsonify(erro.to_dict()), erro.status

    @app.errorhandler(HTTPException)
    def tratar_erro_http(erro):
        return jsonify({"error": erro.description}), erro.code

    @app.errorhandler(Exception)
    def tratar_erro_inesperado(erro):
        logger.exception("💥 ERRO CRÍTICO em %s %s", request.method, request.path)
        return jsonify({"error": "Erro interno do servidor"}), 500

    # ========== CHECKOUT ==========

    @app.route('/checkout', methods=['POST'])
    def checkout():
        """Cria a preferência de pagamento do plano VIP no Mercado Pago"""
        dados = request.get_json(silent=True)
        if not dados:
            raise RequisicaoInvalida("Nenhum dado recebido")

        plano = normalizar_plano(dados.get('planType'))
        if not plano:
            raise RequisicaoInvalida("Plano inválido")

        email = normalizar_email(dados.get('email'))
        if not _email_valido(email):
            raise RequisicaoInvalida("Email válido é obrigatório")

        user_id = dados.get('userId') or None
        logger.info("🛒 Iniciando checkout para %s, plano %s", email, plano)
        preferencia = cliente_mp.criar_preferencia_vip(plano, email, user_id)
        return jsonify(preferencia)

    @app.route('/checkout/<resultado>', methods=['GET'])
    def checkout_retorno(resultado):
        """Retorno do comprador (back_urls); a ativação VIP vem só do webhook"""
        mensagens = {
            'success': "Pagamento aprovado! Seu VIP será ativado assim que o Mercado Pago confirmar.",
            'pending': "Pagamento pendente de confirmação.",
            'failure': "Pagamento recusado. Tente novamente ou use outro método de pagamento.",
        }
        if resultado not in mensagens:
            raise NaoEncontrado("Página não encontrada")

        return jsonify({
            "status": request.args.get('status') or request.args.get('collection_status') or resultado,
            "payment_id": request.args.get('payment_id') or request.args.get('collection_id'),
            "external_reference": request.args.get('external_reference'),
            "message": mensagens[resultado],
        })

    # ========== WEBHOOK PARA NOTIFICAÇÕES ==========

    def _checar_processador(processador):
        if processador not in PROCESSADORES_SUPORTADOS:
            raise NaoEncontrado("Processador de pagamento não suportado")

    @app.route('/webhook/<processador>', methods=['GET'])
    def webhook_status(processador):
        _checar_processador(processador)
        return jsonify({
            "message": "Webhook funcionando!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "status": "online",
        })

    @app.route('/webhook/<processador>', methods=['POST'])
    def webhook_pagamento(processador):
        """Recebe notificações do Mercado Pago e ativa/estende o VIP"""
        _checar_processador(processador)
        logger.info("🔔 Webhook recebido do Mercado Pago")

        notificacao = request.get_json(silent=True)
        if notificacao is None and not request.args:
            raise RequisicaoInvalida("Formato inválido")
        notificacao = notificacao if isinstance(notificacao, dict) else {}
        query = request.args.to_dict()

        if config.mp_webhook_secret:
            data_id = query.get('data.id') or extrair_payment_id(notificacao)
            if not verificar_assinatura(config.mp_webhook_secret,
                                        request.headers.get('x-signature'),
                                        request.headers.get('x-request-id'),
                                        data_id):
                logger.warning("❌ Assinatura do webhook inválida")
                raise RequisicaoInvalida("assinatura inválida")
        else:
            logger.warning("⚠️ MP_WEBHOOK_SECRET não definido; assinatura não verificada")

        return jsonify(reconciliador.processar(notificacao, query)), 200

    # ========== VIP / CATÁLOGO ==========

    @app.route('/vip/status', methods=['GET'])
    def vip_status():
        email = normalizar_email(request.args.get('email'))
        if not email:
            raise RequisicaoInvalida("Email é obrigatório")
        status = consultar_vip(repositorio, email, relogio())
        return jsonify({"email": email, **status.to_dict()})

    @app.route('/catalog', methods=['GET'])
    def catalogo():
        """Catálogo completo para VIP; subconjunto limitado para os demais"""
        email = normalizar_email(request.args.get('email'))
        busca = (request.args.get('search') or '').strip()
        linha = request.args.get('linha') or None
        if linha and linha not in LINHAS_CATALOGO:
            raise RequisicaoInvalida("Linha de produto inválida", f"Use uma de: {', '.join(LINHAS_CATALOGO)}")

        is_vip = consultar_vip(repositorio, email, relogio()).is_vip if email else False
        # não-VIP: o limite vale para o catálogo inteiro, filtros só depois
        itens = repositorio.listar_catalogo(linha if is_vip else None)
        itens = filtrar_catalogo(itens, is_vip, busca, politica, linha)

        logger.info("🛍️ Catálogo: %d registros (VIP=%s, busca=%r)", len(itens), is_vip, busca)
        return jsonify({
            "success": True,
            "data": [item.to_publico() for item in itens],
            "isVIP": is_vip,
            "totalShown": len(itens),
            "message": MENSAGEM_VIP if is_vip else MENSAGEM_LIMITADA,
        })

    # ========== HEALTH CHECK ==========

    @app.route('/health', methods=['GET'])
    @app.route('/healthz', methods=['GET'])
    def health_check():
        """Endpoint público de verificação de saúde do sistema"""
        banco_ok = repositorio.verificar_conexao()
        return jsonify({
            "status": "healthy" if banco_ok else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "database": "healthy" if banco_ok else "unhealthy",
                "mercado_pago": cliente_mp.ambiente(),
                "webhook_signature": "configured" if config.mp_webhook_secret else "not_configured",
                "catalogo_politica": politica.nome,
            },
        }), 200 if banco_ok else 503

    # ========== COMANDOS ==========

    @app.cli.command('importar-catalogo')
    @click.argument('arquivo', type=click.Path(exists=True, dir_okay=False))
    @click.option('--linha', default='peliculas', show_default=True,
                  type=click.Choice(LINHAS_CATALOGO), help='Linha usada quando o item não informa uma')
    def importar_catalogo(arquivo, linha):
        """Importa [{modelo, compatibilidade, linha?}] de um JSON para o banco"""
        try:
            itens = carregar_de_arquivo(arquivo, linha)
        except ValueError as e:
            raise click.ClickException(str(e))
        total = repositorio.importar_catalogo(itens)
        click.echo(f"✅ Migração concluída: {total} registros inseridos")

    @app.cli.command('semear-catalogo')
    def semear_catalogo():
        """Insere a amostra de desenvolvimento se o catálogo estiver vazio"""
        if repositorio.contar_catalogo() > 0:
            click.echo("ℹ️ Catálogo já possui registros; nada a fazer")
            return
        total = repositorio.importar_catalogo(criar_catalogo_inicial())
        click.echo(f"✅ {total} registros de exemplo inseridos")

    return app


if __name__ == '__main__':
    try:
        config = carregar_configuracao()
    except ErroConfiguracao as e:
        configurar_logging()
        logger.error("❌ %s", e)
        sys.exit(1)

    app = create_app(config)
    logger.info("🔧 Porta: %s", config.port)
    app.run(host='0.0.0.0', port=config.port, debug=config.debug)
