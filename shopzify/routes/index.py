from flask import blueprints, jsonify


index_bp = blueprints.Blueprint('index_bp', __name__)
@index_bp.route('/', methods=['GET'])
def home():
    return jsonify({'message': 'Shopzify API is running'}), 200
