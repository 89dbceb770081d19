#!/usr/bin/env python3
"""
Banana Pro Web UI - Flask 后端
读取 / 写入 PNG 内嵌数据，并把参考图片交给视觉模型分析
"""

import os
import io
import json
import tempfile
from flask import Flask, request, jsonify, send_file
from werkzeug.utils import secure_filename

from banana_pro import (
    __version__, PayloadKeyword, EncodeStatus, DecodeStatus,
    encode_png_text, decode_png_text, text_from_metadata,
    BananaPayload, to_png_bytes, info_filename,
    VisualAnalyzer, AnalysisError, install_log_tee, log_jsonl,
)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 32 * 1024 * 1024

# 全局状态
analyzer = None

# 配置
UPLOAD_FOLDER = 'webui/uploads'
ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'bmp', 'webp'}
PORT = int(os.environ.get('BANANA_PRO_PORT', '8888'))
PAYLOAD_FORM_FIELDS = ('mega', 'lighting', 'scene', 'view', 'inpaint')


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def init_analyzer():
    """初始化视觉分析客户端，没有可用 Key 时保持为 None"""
    global analyzer
    try:
        analyzer = VisualAnalyzer()
        return True
    except (RuntimeError, ValueError) as e:
        print(f"⚠️ 视觉分析客户端未启用: {e}")
        analyzer = None
        return False


def _read_upload(field: str = 'file'):
    """返回 (文件名, 字节, 错误响应)"""
    if field not in request.files:
        return None, None, (jsonify({'error': 'No file uploaded'}), 400)
    file = request.files[field]
    if file.filename == '':
        return None, None, (jsonify({'error': 'No file selected'}), 400)
    if not allowed_file(file.filename):
        return None, None, (jsonify({'error': 'Unsupported file type'}), 415)
    return file.filename, file.read(), None


def _payload_from_request() -> BananaPayload:
    """payload 字段（JSON 字符串）优先，否则读取单独的表单字段"""
    raw = request.form.get('payload')
    if raw:
        return BananaPayload.from_json(raw)
    data = {k: request.form.get(k, '') for k in PAYLOAD_FORM_FIELDS}
    data['inpaintEnabled'] = request.form.get('inpaintEnabled', '').lower() in ('true', '1', 'yes')
    data['cameraProjection'] = request.form.get('cameraProjection', '').lower() in ('true', '1', 'yes')
    return BananaPayload.from_dict(data)


@app.route('/')
def index():
    """接口列表"""
    return jsonify({
        'name': 'Banana Pro Web UI',
        'version': __version__,
        'endpoints': [
            'GET /api/status',
            'POST /api/pnginfo/read',
            'POST /api/pnginfo/embed',
            'POST /api/analyze',
            'POST /api/translate',
        ],
    })


@app.route('/api/status')
def api_status():
    status = {'version': __version__, 'analyzer': analyzer is not None}
    if analyzer is not None:
        status['stats'] = analyzer.get_stats()
        status['keys'] = analyzer.key_manager.get_stats()
    return jsonify(status)


# ==================== PNG 信息 ====================

@app.route('/api/pnginfo/read', methods=['POST'])
def api_read_pnginfo():
    """读取上传图片中的内嵌数据"""
    filename, data, error = _read_upload()
    if error:
        return error

    result = decode_png_text(data)
    log_jsonl({'event': 'pnginfo_read', 'file': filename, 'status': result.status.name})
    if result.status == DecodeStatus.NOT_PNG:
        return jsonify({'error': 'Not a valid PNG', 'status': result.status.name}), 400

    response = {
        'found': result.found,
        'status': result.status.name,
        'keyword': result.keyword.value if result.keyword else None,
        'raw': result.text,
        'data': None,
        'text': text_from_metadata(result.text),
    }
    if result.found and result.keyword.is_json:
        try:
            response['data'] = json.loads(result.text)
        except ValueError:
            print(f"⚠️ {filename} 的 BananaProData 不是有效 JSON")
    return jsonify(response)


@app.route('/api/pnginfo/embed', methods=['POST'])
def api_embed_pnginfo():
    """把 BananaProData 写入上传的图片，返回 PNG 下载"""
    filename, data, error = _read_upload()
    if error:
        return error

    try:
        payload = _payload_from_request()
    except ValueError as e:
        return jsonify({'error': f'Invalid payload: {e}'}), 400
    if payload.is_empty():
        return jsonify({'error': 'No prompt data to embed.'}), 400

    try:
        carrier = to_png_bytes(data)
    except Exception as e:
        print(f"❌ 图片解码失败 {filename}: {e}")
        return jsonify({'error': 'Error processing image.'}), 400

    result = encode_png_text(carrier, PayloadKeyword.BANANA_PRO.value, payload.to_json())
    log_jsonl({'event': 'pnginfo_embed', 'file': filename, 'status': result.status.name})
    if result.status != EncodeStatus.OK:
        return jsonify({'error': 'Error processing image.', 'status': result.status.name}), 400

    return send_file(
        io.BytesIO(result.data),
        mimetype='image/png',
        as_attachment=True,
        download_name=info_filename(filename),
    )


# ==================== 视觉分析 ====================

@app.route('/api/analyze', methods=['POST'])
def api_analyze():
    """分析上传的参考图片（可附带草图）"""
    if analyzer is None:
        return jsonify({'error': 'Analyzer not initialized'}), 503

    files = [f for f in request.files.getlist('files') if f.filename and allowed_file(f.filename)]
    sketch = request.files.get('sketch')
    if not files and not (sketch and sketch.filename):
        return jsonify({'error': 'Please upload files.'}), 400

    os.makedirs(UPLOAD_FOLDER, exist_ok=True)
    with tempfile.TemporaryDirectory(dir=UPLOAD_FOLDER) as tmp_dir:
        paths = []
        for i, f in enumerate(files):
            path = os.path.join(tmp_dir, f"{i:02d}-{secure_filename(f.filename)}")
            f.save(path)
            paths.append(path)
        sketch_path = None
        if sketch and sketch.filename:
            sketch_path = os.path.join(tmp_dir, f"sketch-{secure_filename(sketch.filename)}")
            sketch.save(sketch_path)

        try:
            result = analyzer.analyze(paths, sketch_path=sketch_path)
        except AnalysisError as e:
            log_jsonl({'event': 'analyze_failed', 'error': str(e)})
            return jsonify({'error': str(e)}), 502

    payload = BananaPayload.from_analysis(result)
    return jsonify({'analysis': result.to_dict(), 'payload': payload.to_dict()})


@app.route('/api/translate', methods=['POST'])
def api_translate():
    if analyzer is None:
        return jsonify({'error': 'Analyzer not initialized'}), 503
    data = request.get_json(silent=True) or {}
    text = (data.get('text') or '').strip()
    if not text:
        return jsonify({'error': 'No text'}), 400
    try:
        return jsonify({'text': analyzer.translate(text)})
    except AnalysisError as e:
        return jsonify({'error': str(e)}), 502


def initialize_app():
    """初始化日志与分析客户端"""
    print("🔧 初始化应用组件...")
    try:
        install_log_tee('webui')
        print("✅ 日志系统初始化成功")
    except OSError as e:
        print(f"⚠️ 日志系统初始化失败: {e}")
    init_analyzer()
    print("✅ 应用初始化完成")


if __name__ == '__main__':
    initialize_app()
    print("🚀 Banana Pro Web UI 启动中...")
    print(f"📱 访问地址: http://localhost:{PORT}")
    app.run(debug=True, host='0.0.0.0', port=PORT)
