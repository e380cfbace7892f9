"""
Spreadsheet imports.

Type A  levels      one row per tank, one column per date
Type B  contracts   tank, supplier, chemical, SG, effective date, price, ppm, notes
Type C  cooling     area (CT-1/CT-2) or tank, flow, temperatures, hardness
Type D  boiler      tank, weekly steam production, ppm

Header aliases are mapped onto canonical fields before any calculation;
rows that cannot be used are reported as RowIssue entries instead of being
dropped silently.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from chemdose.models import (
    Tank, Reading, ChemicalSupply, CWSParameterRecord, BWSParameterRecord, SystemType,
)
from chemdose.services.aggregation import week_start
from chemdose.services.anomaly_detection import AnomalyOptions, AnomalyReport, detect_anomalies
from chemdose.services.contracts import check_specific_gravity, inherited_target_ppm
from chemdose.services.normalization import (
    LevelNormalizer, normalize_timestamp, parse_flexible_date_key, parse_number, to_midnight,
)
from chemdose.services.reading_service import ReadingService, build_reading
from chemdose.services.storage import StorageService

logger = logging.getLogger(__name__)

BATCH_OPERATOR = "Batch Import"
CT1_MARKERS = ('CWS-1', 'CT-1')
CT1_DESCRIPTION_MARKER = '一階'


@dataclass
class RowIssue:
    row: int  # Spreadsheet row number, header is row 1
    reason: str


@dataclass
class ColumnSpec:
    field: str
    aliases: Tuple[str, ...]
    parser: Callable[[Any], Any] = lambda v: v
    required: bool = False


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class RowSchema:
    """Maps heterogeneous spreadsheet headers onto canonical typed fields."""

    def __init__(self, *columns: ColumnSpec):
        self.columns = columns

    def find_key(self, row: Dict, column: ColumnSpec):
        stripped = {str(k).strip(): k for k in row.keys()}
        for alias in column.aliases:
            if alias in stripped:
                return stripped[alias]
        return None

    def known_keys(self, row: Dict) -> set:
        keys = set()
        for column in self.columns:
            key = self.find_key(row, column)
            if key is not None:
                keys.add(key)
        return keys

    def map_row(self, row: Dict) -> Tuple[Dict[str, Any], List[str]]:
        record, errors = {}, []
        for column in self.columns:
            key = self.find_key(row, column)
            raw = row.get(key) if key is not None else None
            value = column.parser(raw) if raw is not None else None
            if raw is not None and value is None:
                errors.append(f"invalid {column.field}: {raw!r}")
            elif value is None and column.required:
                errors.append(f"missing {column.field}")
            record[column.field] = value
        return record, errors

    def validate(self, rows: Sequence[Dict]) -> Tuple[List[Tuple[int, Dict[str, Any]]], List[RowIssue]]:
        valid, issues = [], []
        for idx, row in enumerate(rows, start=2):
            record, errors = self.map_row(row)
            if errors:
                logger.warning(f"Row {idx} skipped: {'; '.join(errors)}")
                issues.append(RowIssue(idx, "; ".join(errors)))
            else:
                valid.append((idx, record))
        return valid, issues


TANK_ALIASES = ('儲槽名稱', 'TankName', '儲槽', 'Tank', '適用儲槽')
DATE_ALIASES = ('日期', '填表日期', '生效日期', 'Date')
PPM_ALIASES = ('目標濃度', '目標藥劑濃度', 'Target PPM')

LEVEL_SCHEMA = RowSchema(
    ColumnSpec('tank_name', TANK_ALIASES, _text, required=True),
)

SUPPLY_SCHEMA = RowSchema(
    ColumnSpec('tank_name', TANK_ALIASES, _text, required=True),
    ColumnSpec('supplier_name', ('供應商', 'Supplier'), _text, required=True),
    ColumnSpec('chemical_name', ('藥劑名稱', 'Chemical'), _text),
    ColumnSpec('specific_gravity', ('比重', 'SG'), parse_number, required=True),
    ColumnSpec('start_date', DATE_ALIASES, normalize_timestamp, required=True),
    ColumnSpec('price', ('單價', 'Price'), parse_number),
    ColumnSpec('target_ppm', PPM_ALIASES, parse_number),
    ColumnSpec('notes', ('備註', 'Notes'), _text),
)

CWS_SCHEMA = RowSchema(
    ColumnSpec('tank_name', ('儲槽名稱', 'Tank', '儲槽'), _text),
    ColumnSpec('area', ('區域', 'Area'), _text),
    ColumnSpec('date', DATE_ALIASES, normalize_timestamp, required=True),
    ColumnSpec('circulation_rate', ('循環水量', 'Circulation Rate'), parse_number),
    ColumnSpec('temp_outlet', ('出水溫', 'T1'), parse_number),
    ColumnSpec('temp_return', ('回水溫', 'T2'), parse_number),
    ColumnSpec('temp_diff', ('溫差', 'Delta T'), parse_number),
    ColumnSpec('cws_hardness', ('冷卻水硬度', 'CWS Hardness'), parse_number),
    ColumnSpec('makeup_hardness', ('補水硬度', 'Makeup Hardness'), parse_number),
    ColumnSpec('concentration_cycles', ('濃縮倍數', 'Concentration Cycles'), parse_number),
    ColumnSpec('target_ppm', PPM_ALIASES, parse_number),
)

BWS_SCHEMA = RowSchema(
    ColumnSpec('tank_name', ('儲槽名稱', 'Tank', '儲槽'), _text, required=True),
    ColumnSpec('date', DATE_ALIASES, normalize_timestamp, required=True),
    ColumnSpec('steam_production', ('蒸汽總產量', 'Steam Production'), parse_number, required=True),
    ColumnSpec('target_ppm', PPM_ALIASES, parse_number),
)


@dataclass
class ImportResult:
    kind: str
    imported: int = 0
    issues: List[RowIssue] = field(default_factory=list)
    converted_count: int = 0
    sg_updated: int = 0
    warnings: List[str] = field(default_factory=list)
    needs_confirmation: bool = False

    @property
    def skipped(self) -> int:
        return len(self.issues)


@dataclass
class LevelImportPlan:
    """Phase one of a level import: candidate readings and what looked wrong."""
    candidates: List[Reading] = field(default_factory=list)
    report: AnomalyReport = field(default_factory=AnomalyReport)
    issues: List[RowIssue] = field(default_factory=list)
    converted_count: int = 0


def area_tanks(tanks: Sequence[Tank], area: str) -> List[Tank]:
    """Cooling tanks belonging to area CT-1 or CT-2."""
    cooling = [t for t in tanks if t.system == SystemType.COOLING]
    ct1 = [
        t for t in cooling
        if any(m in t.name for m in CT1_MARKERS) or CT1_DESCRIPTION_MARKER in (t.description or '')
    ]
    normalized = area.upper().replace(' ', '').replace('_', '-')
    if normalized in ('CT-1', 'CT1', 'CWS-1'):
        return ct1
    if normalized in ('CT-2', 'CT2', 'CWS-2'):
        return [t for t in cooling if t not in ct1]
    return []


class SpreadsheetImporter:
    def __init__(
        self,
        storage: StorageService,
        options: Optional[AnomalyOptions] = None,
        today: Optional[date] = None,
        future_tolerance_days: int = 0,
    ):
        self.storage = storage
        self.options = options or AnomalyOptions()
        self.today = today or date.today()
        self.future_tolerance_days = future_tolerance_days
        self.readings = ReadingService(storage, self.options)

    def _is_future(self, moment: datetime) -> bool:
        return moment.date() > self.today + timedelta(days=self.future_tolerance_days)

    def _tank_lookup(self) -> Dict[str, Tank]:
        return {t.name.strip(): t for t in self.storage.get_tanks()}

    # --- Type A ---

    def prepare_levels(self, rows: Sequence[Dict]) -> LevelImportPlan:
        plan = LevelImportPlan()
        tanks = self._tank_lookup()
        supplies = self.storage.get_supplies()
        existing = self.storage.get_readings()
        normalizer = LevelNormalizer()
        by_key: Dict[Tuple[int, date], Reading] = {}

        valid, plan.issues = LEVEL_SCHEMA.validate(rows)
        for row_no, record in valid:
            tank = tanks.get(record['tank_name'])
            if tank is None:
                plan.issues.append(RowIssue(row_no, f"unknown tank {record['tank_name']!r}"))
                continue
            row = rows[row_no - 2]
            schema_keys = LEVEL_SCHEMA.known_keys(row)

            for key, raw in row.items():
                if key in schema_keys or raw is None:
                    continue
                moment = parse_flexible_date_key(key, today=self.today)
                if moment is None:
                    continue
                level = normalizer.normalize(raw, tank)
                if level is None:
                    logger.warning(f"Row {row_no}: non-numeric level {raw!r} for {tank.name} on {key}")
                    plan.issues.append(RowIssue(row_no, f"{key}: non-numeric level {raw!r}"))
                    continue
                if self._is_future(moment):
                    plan.issues.append(RowIssue(row_no, f"{moment.date()}: future date rejected"))
                    continue

                same_day = self.readings.same_day_reading(tank.id, moment, existing)
                by_key[(tank.id, moment.date())] = build_reading(
                    tank,
                    moment,
                    level,
                    supplies,
                    added_amount_liters=same_day.added_amount_liters if same_day else 0.0,
                    operator_name=BATCH_OPERATOR,
                    reading_id=same_day.id if same_day else None,
                )

        plan.candidates = sorted(by_key.values(), key=lambda r: (r.tank_id, r.timestamp))
        plan.converted_count = normalizer.converted_count

        for tank in tanks.values():
            tank_candidates = [r for r in plan.candidates if r.tank_id == tank.id]
            if tank_candidates:
                tank_existing = [r for r in existing if r.tank_id == tank.id]
                report = detect_anomalies(tank, tank_candidates, tank_existing, self.options)
                plan.report.anomalies.extend(report.anomalies)

        logger.info(
            f"Level import prepared: {len(plan.candidates)} readings, "
            f"{len(plan.report.anomalies)} anomalies, {len(plan.issues)} skipped"
        )
        return plan

    def commit_levels(self, plan: LevelImportPlan) -> ImportResult:
        self.readings.commit(plan.candidates, plan.report, source="IMPORT")
        return ImportResult(
            kind="levels",
            imported=len(plan.candidates),
            issues=plan.issues,
            converted_count=plan.converted_count,
        )

    # --- Type B ---

    def import_supplies(self, rows: Sequence[Dict], confirm: bool = False) -> ImportResult:
        result = ImportResult(kind="supplies")
        tanks = self._tank_lookup()
        timeline = list(self.storage.get_supplies())
        pending: List[Tuple[Tank, ChemicalSupply]] = []

        valid, result.issues = SUPPLY_SCHEMA.validate(rows)
        for row_no, record in sorted(valid, key=lambda item: item[1]['start_date']):
            tank = tanks.get(record['tank_name'])
            if tank is None:
                result.issues.append(RowIssue(row_no, f"unknown tank {record['tank_name']!r}"))
                continue
            if record['specific_gravity'] <= 0:
                result.issues.append(RowIssue(row_no, "specific gravity must be positive"))
                continue

            target_ppm = record['target_ppm']
            if not target_ppm:
                target_ppm = inherited_target_ppm(timeline, tank.id, record['start_date'])
            supply = ChemicalSupply(
                tank_id=tank.id,
                supplier_name=record['supplier_name'],
                chemical_name=record['chemical_name'] or '',
                specific_gravity=record['specific_gravity'],
                price=record['price'],
                start_date=record['start_date'],
                target_ppm=target_ppm,
                notes=record['notes'],
            )
            timeline.append(supply)
            pending.append((tank, supply))
            result.warnings.extend(check_specific_gravity(tank, supply.specific_gravity))

        if result.warnings and not confirm:
            result.needs_confirmation = True
            return result

        self.storage.add_supplies_batch(s for _, s in pending)
        self.storage.db.flush()
        earliest: Dict[int, datetime] = {}
        for tank, supply in pending:
            earliest[tank.id] = min(earliest.get(tank.id, supply.start_date), supply.start_date)
        for tank_id, since in earliest.items():
            result.sg_updated += self.readings.recalculate_specific_gravity(tank_id=tank_id, since=since)

        self.storage.commit()
        result.imported = len(pending)
        logger.info(f"Imported {result.imported} contracts, {result.sg_updated} readings re-weighted")
        return result

    # --- Type C ---

    def import_cws(self, rows: Sequence[Dict]) -> ImportResult:
        result = ImportResult(kind="cws")
        tanks = self._tank_lookup()
        all_tanks = list(tanks.values())

        valid, result.issues = CWS_SCHEMA.validate(rows)
        for row_no, record in valid:
            if self._is_future(record['date']):
                result.issues.append(RowIssue(row_no, f"{record['date'].date()}: future date rejected"))
                continue
            if record['tank_name']:
                tank = tanks.get(record['tank_name'])
                targets = [tank] if tank else []
            elif record['area']:
                targets = area_tanks(all_tanks, record['area'])
            else:
                targets = []
            if not targets:
                result.issues.append(RowIssue(row_no, "no matching tank or area"))
                continue

            week = to_midnight(week_start(record['date'].date()))
            for tank in targets:
                self.storage.save_cws_param(self._merge_cws(tank.id, week, record))
                result.imported += 1

        self.storage.commit()
        logger.info(f"Imported {result.imported} cooling-water parameter records")
        return result

    def _merge_cws(self, tank_id: int, week: datetime, record: Dict) -> CWSParameterRecord:
        """Fields present in the row replace stored ones, missing ones are kept."""
        existing = self.storage.find_cws_param(tank_id, week)
        merged = CWSParameterRecord(tank_id=tank_id, week_start=week)
        fields = ('circulation_rate', 'temp_outlet', 'temp_return', 'temp_diff',
                  'cws_hardness', 'makeup_hardness', 'concentration_cycles', 'target_ppm')
        for name in fields:
            value = record.get(name)
            if value is None and existing is not None:
                value = getattr(existing, name)
            setattr(merged, name, value)

        if record.get('temp_diff') is None and record.get('temp_outlet') is not None and record.get('temp_return') is not None:
            merged.temp_diff = abs(record['temp_return'] - record['temp_outlet'])
        if merged.cws_hardness and merged.makeup_hardness:
            merged.concentration_cycles = merged.cws_hardness / merged.makeup_hardness
        return merged

    # --- Type D ---

    def import_bws(self, rows: Sequence[Dict]) -> ImportResult:
        result = ImportResult(kind="bws")
        tanks = self._tank_lookup()

        valid, result.issues = BWS_SCHEMA.validate(rows)
        for row_no, record in valid:
            tank = tanks.get(record['tank_name'])
            if tank is None:
                result.issues.append(RowIssue(row_no, f"unknown tank {record['tank_name']!r}"))
                continue
            if self._is_future(record['date']):
                result.issues.append(RowIssue(row_no, f"{record['date'].date()}: future date rejected"))
                continue

            week = to_midnight(week_start(record['date'].date()))
            target_ppm = record['target_ppm']
            if target_ppm is None:
                previous = [p for p in self.storage.get_bws_params_history(tank.id) if p.week_start == week]
                target_ppm = previous[0].target_ppm if previous else None
            self.storage.save_bws_param(BWSParameterRecord(
                tank_id=tank.id,
                week_start=week,
                steam_production=record['steam_production'],
                target_ppm=target_ppm,
            ))
            result.imported += 1

        self.storage.commit()
        logger.info(f"Imported {result.imported} boiler parameter records")
        return result
