import json
import shutil
from pathlib import Path

from family_budget.pages.lib.budgets.catalog import reload_catalog
from scripts.validate_catalog import main

CONFIG_DIR = Path(__file__).resolve().parents[1] / 'family_budget' / 'pages' / 'config'


def test_shipped_catalog_validates(capsys):
    assert main([]) == 0
    assert 'validated successfully' in capsys.readouterr().out


def test_broken_catalog_fails(tmp_path, monkeypatch, capsys):
    shutil.copy(CONFIG_DIR / 'catalog.json', tmp_path / 'catalog.json')
    base = json.loads((CONFIG_DIR / 'base_percentages.json').read_text(encoding='utf-8'))
    base['band_5k_8k']['C'] = 0.9
    (tmp_path / 'base_percentages.json').write_text(json.dumps(base), encoding='utf-8')

    monkeypatch.setenv('FAMILY_BUDGET_CATALOG_DIR', str(tmp_path))
    try:
        assert main([str(tmp_path)]) == 1
    finally:
        monkeypatch.delenv('FAMILY_BUDGET_CATALOG_DIR')
        reload_catalog()
    assert 'band_5k_8k' in capsys.readouterr().out
