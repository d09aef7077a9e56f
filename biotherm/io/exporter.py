"""결과 내보내기 모듈"""

import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from ..models.thermal import ThermalImage
from ..core.masking import get_mask_statistics
from ..visualization.plots import plot_thermal_heatmap
from ..visualization.compare import viz_thermal_barplot, viz_thermal_boxplot

_logger = logging.getLogger(__name__)


def _json_value(value: Any) -> Any:
    """JSON 직렬화 가능한 값으로 변환 (NaN → None)"""
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        value = float(value)
        return value if np.isfinite(value) else None
    if isinstance(value, (np.bool_,)):
        return bool(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    return value


class ResultExporter:
    """분석 결과 내보내기"""

    def __init__(self, output_dir: str = "results"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    def export_csv(self,
                   table: pd.DataFrame,
                   filename: Optional[str] = None) -> Path:
        """
        통계 테이블 CSV 저장

        Args:
            table: compile_batch_stats / merge / aggregate 결과
            filename: 출력 파일명 (없으면 자동 생성)

        Returns:
            저장된 파일 경로
        """
        if filename is None:
            filename = f"biotherm_stats_{self.timestamp}.csv"

        output_path = self.output_dir / filename
        # Excel 호환 BOM
        table.to_csv(output_path, index=False, encoding='utf-8-sig')

        _logger.info(f"CSV 저장: {output_path} ({len(table)}행)")
        return output_path

    def export_json(self,
                    records: Mapping[str, ThermalImage],
                    parameters: Dict,
                    filename: Optional[str] = None) -> Path:
        """
        JSON으로 상세 결과 내보내기

        Args:
            records: {이름: ThermalImage}
            parameters: 사용된 파라미터

        Returns:
            저장된 파일 경로
        """
        if filename is None:
            filename = f"biotherm_results_{self.timestamp}.json"

        output_path = self.output_dir / filename

        with_stats = [r for r in records.values() if r.stats is not None]
        means = [r.stats.get('Mean') for r in with_stats]
        means = [m for m in means if m is not None and np.isfinite(m)]

        data = {
            "metadata": {
                "export_time": datetime.now().isoformat(),
                "total_records": len(records),
                "with_stats": len(with_stats),
            },
            "parameters": parameters,
            "statistics": {
                "mean_temperature": {
                    "mean": float(np.mean(means)) if means else None,
                    "min": float(np.min(means)) if means else None,
                    "max": float(np.max(means)) if means else None,
                    "std": float(np.std(means)) if means else None,
                },
            },
            "results": {
                name: self._record_to_dict(img)
                for name, img in records.items()
            }
        }

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(_json_value(data), f, indent=2, ensure_ascii=False)

        _logger.info(f"JSON 저장: {output_path}")
        return output_path

    def _record_to_dict(self, img: ThermalImage) -> dict:
        """ThermalImage를 딕셔너리로 변환"""
        return {
            "filename": img.meta.filename,
            "fullpath": img.meta.fullpath,
            "dims": list(img.shape),
            "mask": get_mask_statistics(img),
            "stats": img.stats,
        }

    def export_summary_txt(self,
                           records: Mapping[str, ThermalImage],
                           parameters: Dict,
                           failed: Optional[list] = None,
                           filename: Optional[str] = None) -> Path:
        """
        TXT 요약 리포트 내보내기
        """
        if filename is None:
            filename = f"biotherm_summary_{self.timestamp}.txt"

        output_path = self.output_dir / filename
        failed = failed or []

        total = len(records)
        with_stats = sum(1 for r in records.values() if r.stats is not None)

        lines = [
            "=" * 60,
            "THERMAL IMAGE ANALYSIS REPORT",
            "=" * 60,
            "",
            f"Export Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            "",
            "--- PARAMETERS ---",
        ]
        lines.extend(f"{k}: {v}" for k, v in parameters.items())
        lines.extend([
            "",
            "--- SUMMARY ---",
            f"Loaded Records: {total}",
            f"  ✓ With Statistics: {with_stats}",
            f"  ✗ Failed Files: {len(failed)}",
        ])
        if failed:
            lines.extend(f"    - {name}" for name in failed)

        lines.extend([
            "",
            "--- INDIVIDUAL RESULTS ---",
            "",
        ])

        for name, img in records.items():
            mask = get_mask_statistics(img)
            s = img.stats
            if s is None:
                lines.append(f"? {name}: no statistics")
                continue
            lines.append(
                f"✓ {name}: Mean={s.get('Mean', float('nan')):.2f}, "
                f"Max={s.get('Max', float('nan')):.2f}, "
                f"Peak={s.get('Peak_Density', float('nan')):.2f}, "
                f"ROI={mask['roi_pixels']}px ({100 * mask['coverage_ratio']:.1f}%)"
            )

        lines.extend([
            "",
            "=" * 60,
            "END OF REPORT",
            "=" * 60,
        ])

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write('\n'.join(lines))

        _logger.info(f"요약 리포트 저장: {output_path}")
        return output_path

    def export_heatmaps(self,
                        records: Mapping[str, ThermalImage],
                        palette: str = "inferno",
                        use_processed: bool = True,
                        dpi: int = 150,
                        subdir: Optional[str] = None) -> Path:
        """
        레코드별 히트맵 PNG 저장
        """
        if subdir is None:
            subdir = f"heatmaps_{self.timestamp}"

        output_dir = self.output_dir / subdir
        output_dir.mkdir(parents=True, exist_ok=True)

        for name, img in records.items():
            output_name = f"heatmap_{Path(name.replace('/', '_')).stem}.png"
            fig = plot_thermal_heatmap(img, use_processed=use_processed,
                                       palette=palette, dpi=dpi,
                                       save_path=output_dir / output_name)
            plt.close(fig)

        _logger.info(f"히트맵 {len(records)}개 저장: {output_dir}")
        return output_dir

    def export_group_plots(self,
                           table: pd.DataFrame,
                           x_var: str,
                           y_var: str = "Mean",
                           fill_var: Optional[str] = None,
                           palette: str = "npg",
                           dpi: int = 150) -> Dict[str, Path]:
        """
        그룹 비교 막대 그래프 / 상자 그림 PNG 저장

        Returns:
            {'barplot': 경로, 'boxplot': 경로}
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        stem = f"{y_var}_by_{x_var}_{self.timestamp}"
        outputs = {
            'barplot': self.output_dir / f"barplot_{stem}.png",
            'boxplot': self.output_dir / f"boxplot_{stem}.png",
        }

        for kind, plot in (('barplot', viz_thermal_barplot), ('boxplot', viz_thermal_boxplot)):
            fig = plot(table, y_var, x_var, fill_var=fill_var, palette=palette,
                       dpi=dpi, save_path=outputs[kind])
            plt.close(fig)

        _logger.info(f"그룹 비교 그림 저장: {y_var} ~ {x_var} ({self.output_dir})")
        return outputs

    def export_all(self,
                   records: Mapping[str, ThermalImage],
                   table: pd.DataFrame,
                   parameters: Dict,
                   failed: Optional[list] = None,
                   include_heatmaps: bool = False,
                   palette: str = "inferno",
                   dpi: int = 150) -> Dict[str, Path]:
        """
        모든 형식으로 한번에 내보내기

        Returns:
            {형식: 파일경로} 딕셔너리
        """
        results = {}

        results['csv'] = self.export_csv(table)
        results['json'] = self.export_json(records, parameters)
        results['summary'] = self.export_summary_txt(records, parameters, failed)

        if include_heatmaps and records:
            results['heatmaps'] = self.export_heatmaps(records, palette=palette, dpi=dpi)

        return results
