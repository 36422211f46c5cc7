from flask import Flask, jsonify, request

from quantavault.auditor import calculate_security_score, run_security_check
from quantavault.evaluator import evaluate_password
from quantavault.generator import generate, generate_passphrase
from quantavault.importer import FORMATS, parse_csv
from quantavault.models import CredentialRecord, GeneratorConfig

app = Flask(__name__)


def _bad_request(message: str):
    return jsonify({"error": message}), 400


@app.errorhandler(ValueError)
def invalid_input(e):
    return _bad_request(str(e))


def _body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return data


def _int(data: dict, key: str, default: int) -> int:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _str(data: dict, key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


@app.route('/')
def home():
    return jsonify({
        "message": "QuantaVault API is running"
    })


@app.route('/generate', methods=['POST'])
def generate_route():
    data = _body()
    config = GeneratorConfig(
        length=_int(data, 'length', 16),
        lowercase=bool(data.get('lowercase', True)),
        uppercase=bool(data.get('uppercase', True)),
        digits=bool(data.get('digits', True)),
        symbols=bool(data.get('symbols', True)),
        exclude_ambiguous=bool(data.get('excludeAmbiguous', False)),
    )
    return jsonify({'password': generate(config)})


@app.route('/passphrase', methods=['POST'])
def passphrase_route():
    data = _body()
    word_count = _int(data, 'wordCount', 4)
    separator = _str(data, 'separator', '-')
    return jsonify({'passphrase': generate_passphrase(word_count, separator)})


@app.route('/score', methods=['POST'])
def score_route():
    data = _body()
    return jsonify(evaluate_password(_str(data, 'password', '')))


@app.route('/audit', methods=['POST'])
def audit_route():
    """Audit a posted record collection: {"records": [...], "twoFactor": int}."""
    data = _body()
    raw = data.get('records', [])
    if not isinstance(raw, list) or not all(isinstance(r, dict) for r in raw):
        return _bad_request("records must be a list of objects")
    try:
        records = [CredentialRecord.from_dict(r) for r in raw]
    except (KeyError, TypeError, ValueError) as e:
        return _bad_request(f"malformed record: {e}")
    findings = run_security_check(records)
    score = calculate_security_score(records, two_factor=_int(data, 'twoFactor', 0))
    return jsonify({
        'findings': [f.to_dict() for f in findings],
        'score': score.to_dict(),
    })


@app.route('/import/preview', methods=['POST'])
def import_preview_route():
    data = _body()
    fmt = _str(data, 'format', 'generic')
    if fmt not in FORMATS:
        return _bad_request(f"unknown format: {fmt}")
    candidates = parse_csv(_str(data, 'csv', ''), fmt)
    return jsonify({'candidates': [c.to_dict() for c in candidates]})


if __name__ == "__main__":
    app.run(debug=True)
