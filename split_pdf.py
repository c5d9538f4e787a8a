#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PDF拆分工具
把一个PDF按固定页数拆分为 <文件名>_part1.pdf、<文件名>_part2.pdf ...

用法:
    python split_pdf.py original.pdf --pages-per-file 10 --max-concurrent 4
"""

import sys
import logging
import argparse
from typing import List, Optional

from pdf_splitter import (
    PdfSplitError,
    SplitResult,
    load_config_from_env,
    load_pdf_file,
    split_pdf_document,
)

logger = logging.getLogger(__name__)


def split_pdf(input_path: str,
              pages_per_file: int,
              max_concurrent: int,
              show_progress: bool = False) -> Optional[SplitResult]:
    """
    加载并拆分PDF文件

    Args:
        input_path: PDF文件路径
        pages_per_file: 每个输出文件的页数
        max_concurrent: 最多同时生成的文件数
        show_progress: 是否显示进度条

    Returns:
        成功时返回SplitResult，失败时返回None
    """
    try:
        document = load_pdf_file(input_path)
        return split_pdf_document(document, pages_per_file, max_concurrent,
                                  show_progress=show_progress)
    except (OSError, PdfSplitError) as e:
        logger.error(f"拆分PDF文件时发生错误: {e}")
        return None


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"不是整数: {value}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"必须是正整数: {value}")
    return number


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="按固定页数把一个PDF拆分为多个PDF文件。"
    )
    parser.add_argument(
        "input_path",
        help="源PDF文件路径，输出文件写在同一目录下。",
    )
    parser.add_argument(
        "--pages-per-file",
        type=_positive_int,
        help="每个输出文件的页数（也可用环境变量 SPLIT_PAGES_PER_FILE）。",
    )
    parser.add_argument(
        "--max-concurrent",
        type=_positive_int,
        help="最多同时生成的文件数（也可用环境变量 SPLIT_MAX_CONCURRENT）。",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        default=None,
        help="显示进度条。",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="日志级别，默认INFO。",
    )
    args = parser.parse_args(argv)

    config = load_config_from_env()
    if args.pages_per_file is None:
        args.pages_per_file = config.pages_per_file
    if args.max_concurrent is None:
        args.max_concurrent = config.max_concurrent
    if args.progress is None:
        args.progress = config.show_progress
    if args.log_level is None:
        args.log_level = config.log_level

    if args.pages_per_file is None:
        parser.error("缺少 --pages-per-file")
    if args.max_concurrent is None:
        parser.error("缺少 --max-concurrent")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    args = _parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    result = split_pdf(args.input_path, args.pages_per_file, args.max_concurrent,
                       show_progress=args.progress)
    if result is None:
        return 1

    logger.info(f"拆分完成: {result.source} 共{result.page_count}页，生成 {len(result.output_files)} 个文件")
    return 0


if __name__ == "__main__":
    sys.exit(main())
