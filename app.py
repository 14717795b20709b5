from flask import Flask, request, jsonify
import threading
from config import DISKS, WEIGHT, SLOTS_PER_WEIGHT, DEFAULT_HASH, DASHBOARD_PORT, RING_VARIANTS, RANDOM_SEED
from placement import build_ring, modulo_place
from hash_functions import get_hash_function
from ring_errors import RingError, NotFound, UnknownNode, DuplicateNode
from ring_visual import get_virtual_nodes_map
from simulate_failure import run_comparison

app = Flask(__name__)


class SystemManager:
    """Holds one ring per variant; every access goes through ``lock``."""

    def __init__(self, disks=DISKS, weight=WEIGHT, hash_name=DEFAULT_HASH):
        self.lock = threading.Lock()
        self.disks = disks
        self.weight = weight
        self.hash_name = hash_name
        self.reset()

    def reset(self):
        with self.lock:
            nodes = list(range(self.disks))
            self.rings = {
                variant: build_ring(nodes, self.weight, variant, self.hash_name, SLOTS_PER_WEIGHT)
                for variant in RING_VARIANTS
            }

    def get_status(self):
        with self.lock:
            sorted_ring = self.rings['sorted']
            slot_ring = self.rings['slot']
            return {
                'sorted': {
                    'nodes': sorted(sorted_ring.nodes),
                    'failed': list(sorted_ring.failed),
                    'tokens': len(sorted_ring.tokens),
                },
                'slot': {
                    'nodes': sorted(slot_ring.nodes),
                    'size': slot_ring.size,
                    'occupied': slot_ring.occupied,
                    'load_factor': slot_ring.load_factor,
                    'collisions': slot_ring.collisions,
                    'finalized': slot_ring.is_finalized,
                },
                'hash': self.hash_name,
                'weight': self.weight,
            }

    def lookup(self, key):
        with self.lock:
            result = {}
            for variant, ring in self.rings.items():
                try:
                    result[variant] = ring.get_node(key)
                except NotFound:
                    result[variant] = None
            result['replicas'] = self.rings['sorted'].get_replicas(key)
            nodes = sorted(self.rings['sorted'].nodes)
            result['modulo'] = None
            if nodes:
                result['modulo'] = nodes[modulo_place(key, len(nodes), get_hash_function(self.hash_name))]
            return result

    def fail_node(self, node_id):
        with self.lock:
            self.rings['sorted'].fail_node(node_id)

    def recover_node(self, node_id):
        with self.lock:
            ring = self.rings['sorted']
            if node_id not in ring.weights:
                raise UnknownNode(f"Node {node_id} is not in the ring")
            ring.recover_node(node_id)

    def remove_node(self, node_id):
        with self.lock:
            for ring in self.rings.values():
                if node_id not in ring.weights:
                    raise UnknownNode(f"Node {node_id} is not in the ring")
            for ring in self.rings.values():
                ring.remove_node(node_id)

    def add_node(self, node_id, weight):
        with self.lock:
            for ring in self.rings.values():
                if node_id in ring.weights:
                    raise DuplicateNode(f"Node {node_id} is already in the ring")
            self.rings['slot'].add_node(node_id, weight)
            self.rings['sorted'].add_node(node_id, weight)

    def finalize(self):
        with self.lock:
            self.rings['slot'].finalize()

    def get_hash_ring(self, variant, limit=5):
        with self.lock:
            ring_map = get_virtual_nodes_map(self.rings[variant], limit)
        ring_data = []
        for node, vnodes in ring_map.items():
            for vnode, position in vnodes:
                ring_data.append({'node': node, 'vnode': vnode, 'position': position})
        return sorted(ring_data, key=lambda x: x['position'])


system_manager = SystemManager()


def _node_id():
    node_id = (request.get_json(silent=True) or {}).get('node_id')
    if not isinstance(node_id, int) or isinstance(node_id, bool) or node_id < 0:
        return None
    return node_id


def _error(e):
    status = 404 if isinstance(e, UnknownNode) else 409 if isinstance(e, DuplicateNode) else 400
    return jsonify({'success': False, 'message': str(e)}), status


@app.route('/api/status')
def get_status():
    return jsonify(system_manager.get_status())


@app.route('/api/lookup/<key>')
def lookup_key(key):
    result = system_manager.lookup(key)
    if result['sorted'] is None:
        return jsonify({'success': False, 'message': 'All nodes failed', **result}), 503
    return jsonify({'success': True, 'key': key, **result})


@app.route('/api/fail_node', methods=['POST'])
def fail_node():
    node_id = _node_id()
    if node_id is None:
        return jsonify({'success': False, 'message': 'Invalid node ID'}), 400
    try:
        system_manager.fail_node(node_id)
    except RingError as e:
        return _error(e)
    return jsonify({'success': True, 'message': f'Node {node_id} marked failed'})


@app.route('/api/recover_node', methods=['POST'])
def recover_node():
    node_id = _node_id()
    if node_id is None:
        return jsonify({'success': False, 'message': 'Invalid node ID'}), 400
    try:
        system_manager.recover_node(node_id)
    except RingError as e:
        return _error(e)
    return jsonify({'success': True, 'message': f'Node {node_id} recovered'})


@app.route('/api/remove_node', methods=['POST'])
def remove_node():
    node_id = _node_id()
    if node_id is None:
        return jsonify({'success': False, 'message': 'Invalid node ID'}), 400
    try:
        system_manager.remove_node(node_id)
    except RingError as e:
        return _error(e)
    return jsonify({'success': True, 'message': f'Node {node_id} removed, slot ring needs finalize'})


@app.route('/api/add_node', methods=['POST'])
def add_node():
    node_id = _node_id()
    if node_id is None:
        return jsonify({'success': False, 'message': 'Invalid node ID'}), 400
    weight = request.json.get('weight', system_manager.weight)
    if not isinstance(weight, int) or weight < 1:
        return jsonify({'success': False, 'message': 'Weight must be a positive integer'}), 400
    try:
        system_manager.add_node(node_id, weight)
    except RingError as e:
        return _error(e)
    return jsonify({'success': True, 'message': f'Node {node_id} added with weight {weight}'})


@app.route('/api/finalize', methods=['POST'])
def finalize():
    try:
        system_manager.finalize()
    except RingError as e:
        return _error(e)
    return jsonify({'success': True, 'message': 'Slot ring finalized'})


@app.route('/api/hash_ring')
def get_hash_ring():
    variant = request.args.get('variant', 'sorted')
    if variant not in RING_VARIANTS:
        return jsonify({'success': False, 'message': f'Unknown variant: {variant}'}), 400
    return jsonify({'variant': variant, 'ring_data': system_manager.get_hash_ring(variant)})


@app.route('/api/compare')
def compare():
    try:
        report = run_comparison(
            disks=request.args.get('disks', DISKS, type=int),
            weight=request.args.get('weight', WEIGHT, type=int),
            num_files=request.args.get('files', 10000, type=int),
            variant=request.args.get('variant', 'sorted'),
            hash_name=request.args.get('hash', DEFAULT_HASH),
            removed_disk=request.args.get('remove', None, type=int),
            seed=request.args.get('seed', RANDOM_SEED, type=int),
            keep_files=0,
        )
    except (RingError, ValueError) as e:
        return jsonify({'success': False, 'message': str(e)}), 400
    return jsonify({'success': True, **report.to_dict()})


if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=DASHBOARD_PORT)
