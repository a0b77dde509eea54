#!/usr/bin/env python3
"""
启动模拟面试后端服务
"""
import subprocess
import sys
import os


def main():
    print("启动模拟面试后端服务...")

    # 切换到server目录
    os.chdir(os.path.dirname(os.path.abspath(__file__)))

    # 检查依赖
    try:
        import fastapi  # noqa: F401
        import uvicorn  # noqa: F401
        import numpy  # noqa: F401
        import openai  # noqa: F401
        print("✅ 所有依赖已安装")
    except ImportError as e:
        print(f"❌ 缺少依赖: {e}")
        print("请运行: pip install -e .")
        sys.exit(1)

    from config import settings

    try:
        print(f"📡 服务地址: http://{settings.HOST}:{settings.PORT}")
        print("💡 按 Ctrl+C 停止服务")
        print("-" * 50)

        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "main:app",
            "--host", settings.HOST,
            "--port", str(settings.PORT),
        ] + (["--reload"] if settings.DEBUG else []))
    except KeyboardInterrupt:
        print("\n👋 服务已停止")


if __name__ == "__main__":
    main()
