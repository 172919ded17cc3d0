from flask import jsonify

def error_response(err):
    """Renders an engine error as {"error": ..., "kind": ...} with its HTTP status."""
    return jsonify(err.to_dict()), err.http_status
