"""訪問記録 名寄せ・パターン化 メインスクリプト

訪問記録CSV ＋ 利用者・職員名簿 → 名寄せ取込 → 利用者×開始時刻グループ → 確認用ブック

Usage:
    python main.py --csv visits.csv --roster roster.xlsx
    python main.py --csv visits.csv --roster roster.xlsx --create-patterns --seed 42
"""

import argparse
import random
from datetime import datetime
from pathlib import Path

from utils.helpers import load_config
from readers.roster_reader import read_roster_file
from readers.visit_reader import read_visit_csv
from store.memory import InMemoryRecordStore
from calc.csv_import import ImportJobRegistry, ImportSettings, iter_import
from calc.visit_grouping import analyze_unlinked, group_visits, summarize_groups
from calc.pattern_linking import build_service_records, create_pattern_for_group
from writers.review_writer import write_review_workbook


def main():
    parser = argparse.ArgumentParser(
        description="訪問記録 名寄せ・パターン化システム",
    )
    parser.add_argument(
        "--csv", required=True,
        help="訪問記録CSVファイル",
    )
    parser.add_argument(
        "--roster", required=True,
        help="利用者・職員名簿 (xlsx、シート: 利用者 / 職員)",
    )
    parser.add_argument(
        "--config", default="config.yaml",
        help="設定ファイルパス (default: config.yaml)",
    )
    parser.add_argument(
        "--create-patterns", action="store_true",
        help="件数が min_occurrences 以上のグループにパターンを作成して紐付ける",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="記録作成日時・印刷日時の乱数シード",
    )

    args = parser.parse_args()

    config = load_config(args.config)
    settings = ImportSettings.from_config(config)
    encoding = config.get("import", {}).get("encoding", "utf-8-sig")
    min_occurrences = config.get("weekly_pattern", {}).get("min_occurrences", 2)
    rng = random.Random(args.seed)

    # 出力先: output/YYYYMMDD_HHMM/
    output_base_dir = Path(config["output"]["base_dir"])
    timestamp = datetime.now().strftime("%Y%m%d_%H%M")
    output_base = output_base_dir / timestamp

    print("=== 訪問記録 名寄せ・パターン化 ===")
    print(f"CSV: {args.csv}")
    print(f"名簿: {args.roster}")
    print(f"出力: {output_base}")
    print()

    # --- Phase 1: 読取 ---
    print("--- Phase 1: データ読取 ---")

    rosters = read_roster_file(args.roster)
    store = InMemoryRecordStore(rosters["user"], rosters["staff"])
    print(f"  利用者{len(rosters['user'])}名, 職員{len(rosters['staff'])}名")

    raw_rows = read_visit_csv(args.csv, encoding=encoding)
    print(f"  訪問記録CSV: {len(raw_rows)}行")
    print()

    # --- Phase 2: 名寄せ取込 ---
    print("--- Phase 2: 名寄せ取込 ---")

    registry = ImportJobRegistry()
    job = registry.create(Path(args.csv).name)
    for progress in iter_import(job, raw_rows, store, settings):
        print(
            f"  バッチ {progress.current_batch}/{progress.total_batches}: "
            f"{progress.processed_rows}/{progress.total_rows}行 ({progress.percent:.0f}%)"
        )

    result = job.result
    print(f"  成功{result.successful_rows}行, 失敗{result.failed_rows}行")
    print(f"  名寄せ: 解決{result.resolved_names}件, 未解決{result.unresolved_names}件, "
          f"要確認{len(result.manual_review_required)}件")
    print(f"  新規名前パターン: {result.new_patterns_learned}件")
    for error in result.errors:
        print(f"  [{error.type}] {error.message}")
    print()

    # --- Phase 3: グループ化・パターン作成 ---
    print("--- Phase 3: グループ化 ---")

    groups = group_visits(store.list_visits())

    if args.create_patterns:
        created = 0
        for group in groups:
            if group.count < min_occurrences or group.is_pattern_created:
                continue
            pattern_id = create_pattern_for_group(store, group)
            details = store.get_service_pattern(pattern_id).pattern_details
            store.insert_service_records(
                build_service_records(group, pattern_id, details, rng)
            )
            created += 1
        print(f"  パターン作成: {created}件, サービス提供記録: {len(store.service_records)}件")

    stats = summarize_groups(groups)
    print(f"  {stats.total_groups}グループ ({stats.total_records}件), "
          f"パターンあり{stats.groups_with_patterns}, なし{stats.groups_without_patterns}")

    unlinked = analyze_unlinked(store.list_visits(unlinked_only=True))
    if unlinked.suggest_new_patterns:
        print(f"  未紐付け{unlinked.total_unlinked}件: 新しいパターンの作成を検討してください")
    print()

    # --- Phase 4: 出力 ---
    print("--- Phase 4: 出力生成 ---")

    review_name = config["output"].get("review_file", "取込結果確認.xlsx")
    review_path = write_review_workbook(
        result.manual_review_required, groups, output_base / review_name
    )
    print(f"  確認用ブック → {review_path}")

    print()
    print(f"=== 完了: {output_base} ===")


if __name__ == "__main__":
    main()
