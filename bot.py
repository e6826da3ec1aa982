#!/usr/bin/env python3

"""
Distortion bot: присылает обратно искажённые голосовые, стикеры, фото и видео.
"""

import sys
from pathlib import Path

from distortion_modules.main import main

if __name__ == "__main__":
    # Проверяем наличие .env файла
    if not Path(".env").exists():
        print("⚠️ Предупреждение: Файл .env не найден.")
        print("Создайте файл .env с необходимыми переменными окружения.")

    try:
        main()
    except Exception as e:
        print(f"❌ Критическая ошибка: {e}")
        sys.exit(1)
