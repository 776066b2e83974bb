import json
from pathlib import Path

DATA_DIR = Path(__file__).resolve().parent.parent / "db" / "data"


def get_data_filename(filename: str) -> Path:
    return DATA_DIR / filename


def get_data_from_json(filename: str):
    file_path = get_data_filename(filename)
    with open(file_path, 'r', encoding='UTF-8') as file:
        result = json.load(file)
    return result
