"""
Spreadsheet I/O: uploaded files become lists of row dicts keyed by header,
readings are dumped back out as a flat table.
"""
import csv
import io
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd

from chemdose.models import Reading

EXPORT_COLUMNS = ['Date', 'Tank', 'Level(cm)', 'Volume(L)', 'Weight(kg)', 'SG', 'Operator']


def read_rows(filename: str, content: bytes) -> List[Dict[Any, Any]]:
    """Parse an .xlsx/.xls or .csv upload into row dicts. Empty cells become None."""
    name = (filename or '').lower()
    if name.endswith(('.xlsx', '.xlsm', '.xls')):
        df = pd.read_excel(io.BytesIO(content))
        df = df.astype(object).where(pd.notna(df), None)
        return df.to_dict(orient='records')

    text = content.decode('utf-8-sig')
    reader = csv.DictReader(io.StringIO(text))
    return [
        {k: (v if v != '' else None) for k, v in row.items() if k is not None}
        for row in reader
    ]


def readings_table(readings: Iterable[Reading], tanks: Mapping[int, Any]) -> pd.DataFrame:
    rows = []
    for r in readings:
        tank = tanks.get(r.tank_id)
        rows.append({
            'Date': r.timestamp.date().isoformat(),
            'Tank': tank.name if tank else f"#{r.tank_id}",
            'Level(cm)': r.level_cm,
            'Volume(L)': round(r.calculated_volume, 2),
            'Weight(kg)': round(r.calculated_weight_kg, 2),
            'SG': r.applied_specific_gravity,
            'Operator': r.operator_name or '',
        })
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_readings(readings: Iterable[Reading], tanks: Mapping[int, Any], fmt: str = 'xlsx') -> bytes:
    df = readings_table(readings, tanks)
    buffer = io.BytesIO()
    if fmt == 'csv':
        buffer.write(df.to_csv(index=False).encode('utf-8-sig'))
    else:
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name='Readings')
    return buffer.getvalue()
