"""Generator admin routes.

- GET  /api/generator       tick counter, next run and last tick summary
- POST /api/generator/run   run one tick now
"""

from flask import Blueprint, current_app, jsonify

from scheduler import get_generator

generator_bp = Blueprint('generator', __name__, url_prefix='/api/generator')


@generator_bp.route('', methods=['GET'])
def generator_status():
    return jsonify(get_generator(current_app).get_status())


@generator_bp.route('/run', methods=['POST'])
def run_generator():
    generator = get_generator(current_app)
    result = generator.run_tick()
    if result is None:
        return jsonify({'success': False, 'error': generator.last_error, 'tick': None}), 500
    return jsonify({'success': True, 'error': None, 'tick': result.to_dict()})
