#!/usr/bin/env python3
"""
Banana Pro Web UI 启动脚本 - 从项目根目录启动
"""

import os
import sys
import threading
import time
import webbrowser

PORT = int(os.environ.get("BANANA_PRO_PORT", "8888"))


def create_directories():
    """创建必要的目录"""
    for directory in ["webui/uploads", "keys", "logs"]:
        os.makedirs(directory, exist_ok=True)
        print(f"✅ 目录已创建: {directory}")


def open_browser():
    """延迟打开浏览器"""
    time.sleep(2)  # 等待服务器启动
    webbrowser.open(f'http://localhost:{PORT}')
    print("🌐 已自动打开浏览器")


def main():
    """主函数"""
    print("🚀 Banana Pro Web UI 启动中...")

    if not os.path.exists("banana_pro") or not os.path.exists("webui"):
        print("❌ 请在项目根目录下运行此脚本")
        print("💡 当前目录:", os.getcwd())
        print("💡 应该包含: banana_pro/ 和 webui/ 目录")
        sys.exit(1)

    create_directories()

    print("\n📱 启动 Web UI...")
    print(f"🌐 访问地址: http://localhost:{PORT}")
    print(f"🖼️ 读取 PNG 信息: POST http://localhost:{PORT}/api/pnginfo/read")
    print(f"🍌 写入 PNG 信息: POST http://localhost:{PORT}/api/pnginfo/embed")
    print(f"🔍 视觉分析: POST http://localhost:{PORT}/api/analyze")
    print("\n按 Ctrl+C 停止服务")

    browser_thread = threading.Thread(target=open_browser)
    browser_thread.daemon = True
    browser_thread.start()

    from webui.app import app, initialize_app
    initialize_app()
    app.run(debug=False, host='0.0.0.0', port=PORT)


if __name__ == "__main__":
    main()
