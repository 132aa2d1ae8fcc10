from __future__ import annotations
from typing import Any, Dict
from pathlib import Path
import json

from flask import Flask, request, jsonify, Response

from services.config.env import get_display_config, get_logging_config, get_store_config
from services.config.logging_config import get_logger, setup_logging
from services.exports.reports import valuation_md
from services.exports.writers import write_projection
from services.portfolio.logos import logo_url
from services.portfolio.models import DEFAULT_INVESTMENT_TYPE
from services.portfolio.search import filter_stocks, portfolio_total, sort_stocks
from services.portfolio.store import NotFoundError, PortfolioStore
from services.valuation.dcf import (
    DEFAULT_FORM,
    INSUFFICIENT_INPUT_MESSAGE,
    Metric,
    ValuationInputs,
    check_horizon,
    parse_inputs,
    project,
    result_to_dict,
)

logger = get_logger(__name__)

app = Flask(__name__)

OPENAPI_PATH = Path(__file__).with_name("openapi.json")

# camelCase request keys -> store field names
STOCK_UPDATE_KEYS = {
    "thesis": "thesis",
    "ticker": "ticker",
    "name": "name",
    "investmentType": "investment_type",
    "shares": "shares",
    "price": "price",
    "isWatchlist": "is_watchlist",
    "isFavorite": "is_favorite",
    "priceTarget": "price_target",
}
STRATEGY_UPDATE_KEYS = {
    "name": "name",
    "description": "description",
    "color": "color",
    "icon": "icon",
    "isActive": "is_active",
}

_default_store: PortfolioStore | None = None


# Configuration helpers (overridable via app.config in tests)

def _store() -> PortfolioStore:
    global _default_store
    if app.config.get('STORE') is not None:
        return app.config['STORE']
    if _default_store is None:
        _default_store = PortfolioStore(get_store_config().data_path)
    return _default_store


def _blur_currency() -> bool:
    if 'BLUR_CURRENCY' in app.config:
        return bool(app.config['BLUR_CURRENCY'])
    return get_display_config().blur_currency


def _body() -> Dict[str, Any]:
    payload = request.get_json(force=True, silent=True)
    return payload if isinstance(payload, dict) else {}


def _valuation_inputs() -> ValuationInputs:
    inputs = parse_inputs(_body())
    check_horizon(inputs)
    return inputs


def _pick(body: Dict[str, Any], keys: Dict[str, str]) -> Dict[str, Any]:
    return {field: body[k] for k, field in keys.items() if k in body}


@app.errorhandler(NotFoundError)
def _not_found(e: NotFoundError):
    return jsonify({'error': str(e)}), 404


@app.errorhandler(ValueError)
def _bad_request(e: ValueError):
    return jsonify({'error': str(e)}), 400


@app.errorhandler(Exception)
def _internal_error(e: Exception):
    # HTTP errors raised by Flask itself keep their status
    code = getattr(e, 'code', None)
    if isinstance(code, int) and 400 <= code < 500:
        return jsonify({'error': getattr(e, 'name', 'error')}), code
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({'error': 'Internal server error'}), 500


# DCF calculator

@app.get('/dcf/defaults')
def dcf_defaults():
    return jsonify({
        'inputs': DEFAULT_FORM,
        'metrics': [
            {'value': m.value, 'label': m.label, 'shortLabel': m.short_label}
            for m in Metric
        ],
    })


@app.post('/dcf')
def dcf_calculate():
    inputs = _valuation_inputs()
    result = project(inputs)
    if result is None:
        return jsonify({'result': None, 'message': INSUFFICIENT_INPUT_MESSAGE})
    return jsonify({'result': result_to_dict(result)})


@app.post('/dcf/export')
def dcf_export():
    fmt = request.args.get('format', 'csv')
    if fmt not in ('csv', 'md'):
        return jsonify({'error': 'format must be csv or md'}), 400
    inputs = _valuation_inputs()
    result = project(inputs)
    if result is None:
        return jsonify({'error': INSUFFICIENT_INPUT_MESSAGE}), 422
    if fmt == 'csv':
        return Response(write_projection(result), mimetype='text/csv', headers={
            'Content-Disposition': 'attachment; filename="dcf_projection.csv"'
        })
    return Response(valuation_md(inputs, result, blurred=_blur_currency()), mimetype='text/markdown')


# Stocks

@app.get('/stocks')
def list_stocks():
    # ?q= filters, ?sort=<column>&direction=asc|desc orders the table
    stocks = _store().list_stocks()
    total = portfolio_total(stocks)
    stocks = filter_stocks(stocks, request.args.get('q', ''))
    stocks = sort_stocks(stocks, request.args.get('sort'), request.args.get('direction', 'asc'), total=total)
    out = []
    for s in stocks:
        d = s.to_dict()
        d['logoUrl'] = logo_url(s.stock.ticker)
        out.append(d)
    return jsonify(out)


@app.post('/stocks')
def create_stock():
    body = _body()
    ticker = body.get('ticker')
    name = body.get('name')
    if not ticker or not name:
        return jsonify({'error': 'Missing required fields'}), 400
    stock = _store().create_stock(
        ticker=str(ticker),
        name=name,
        investment_type=body.get('investmentType') or DEFAULT_INVESTMENT_TYPE,
        shares=body.get('shares') or 0,
        price=str(body.get('price') or "0"),
        is_watchlist=bool(body.get('isWatchlist') or False),
        price_target=body.get('priceTarget') or None,
        strategy_ids=body.get('strategyIds') or [],
    )
    return jsonify(stock.to_dict()), 201


@app.delete('/stocks')
def delete_stock():
    sid = request.args.get('id')
    if not sid:
        return jsonify({'error': 'Stock ID is required'}), 400
    _store().delete_stock(sid)
    return jsonify({'success': True})


@app.get('/stocks/<sid>')
def get_stock(sid: str):
    d = _store().get_stock(sid).to_dict()
    d['logoUrl'] = logo_url(d['ticker'])
    return jsonify(d)


@app.patch('/stocks/<sid>')
def update_stock(sid: str):
    body = _body()
    updates = _pick(body, STOCK_UPDATE_KEYS)
    strategy_ids = body.get('strategyIds')
    if not updates and strategy_ids is None:
        return jsonify({'error': 'No fields to update'}), 400
    _store().update_stock(sid, strategy_ids=strategy_ids, **updates)
    return jsonify({'success': True})


# Journal entries

@app.get('/stocks/<sid>/journal')
def list_journal(sid: str):
    return jsonify([e.to_dict() for e in _store().list_entries(sid)])


@app.post('/stocks/<sid>/journal')
def create_journal_entry(sid: str):
    body = _body()
    if not body.get('date'):
        return jsonify({'error': 'Date is required'}), 400
    entry = _store().create_entry(sid, date=body['date'], content=body.get('content') or "")
    return jsonify(entry.to_dict())


@app.patch('/stocks/<sid>/journal/<entry_id>')
def update_journal_entry(sid: str, entry_id: str):
    body = _body()
    if body.get('content') is None:
        return jsonify({'error': 'Content is required'}), 400
    _store().update_entry(entry_id, body['content'])
    return jsonify({'success': True})


@app.delete('/stocks/<sid>/journal/<entry_id>')
def delete_journal_entry(sid: str, entry_id: str):
    _store().delete_entry(entry_id)
    return jsonify({'success': True})


# Canvas nodes

@app.get('/stocks/<sid>/nodes')
def list_nodes(sid: str):
    return jsonify([n.to_dict() for n in _store().list_nodes(sid)])


@app.post('/stocks/<sid>/nodes')
def create_node(sid: str):
    body = _body()
    if not body.get('type') or not body.get('position') or not body.get('data'):
        return jsonify({'error': 'Missing required fields'}), 400
    node = _store().create_node(sid, type=body['type'], position=body['position'], data=body['data'])
    return jsonify(node.to_dict())


@app.patch('/stocks/<sid>/nodes')
def update_node(sid: str):
    body = _body()
    if not body.get('id'):
        return jsonify({'error': 'Node ID is required'}), 400
    _store().update_node(body['id'], position=body.get('position'), data=body.get('data'))
    return jsonify({'success': True})


@app.delete('/stocks/<sid>/nodes')
def delete_node(sid: str):
    node_id = request.args.get('id')
    if not node_id:
        return jsonify({'error': 'Node ID is required'}), 400
    _store().delete_node(node_id)
    return jsonify({'success': True})


# Strategies

@app.get('/strategies')
def list_strategies():
    return jsonify([s.to_dict() for s in _store().list_strategies()])


@app.post('/strategies')
def create_strategy():
    body = _body()
    if not body.get('name'):
        return jsonify({'error': 'Strategy name is required'}), 400
    strategy = _store().create_strategy(
        name=body['name'],
        description=body.get('description') or "",
        color=body.get('color') or "#3b82f6",
        icon=body.get('icon') or "Shield",
    )
    return jsonify(strategy.to_dict()), 201


@app.get('/strategies/<strategy_id>')
def get_strategy(strategy_id: str):
    return jsonify(_store().get_strategy(strategy_id).to_dict())


@app.patch('/strategies/<strategy_id>')
def update_strategy(strategy_id: str):
    updates = _pick(_body(), STRATEGY_UPDATE_KEYS)
    if not updates:
        return jsonify({'error': 'No fields to update'}), 400
    _store().update_strategy(strategy_id, **updates)
    return jsonify({'success': True})


@app.delete('/strategies/<strategy_id>')
def delete_strategy(strategy_id: str):
    _store().delete_strategy(strategy_id)
    return jsonify({'success': True})


@app.get('/openapi.json')
def get_openapi():
    try:
        spec = json.loads(OPENAPI_PATH.read_text())
    except FileNotFoundError:
        return jsonify({'error': 'openapi_not_found'}), 404
    return jsonify(spec)


if __name__ == '__main__':
    log_cfg = get_logging_config()
    setup_logging(level=log_cfg.level, log_dir=log_cfg.log_dir)
    app.run(host='0.0.0.0', port=8000)
