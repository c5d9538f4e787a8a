#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PDF拆分模块
将一个PDF文件按固定页数拆分为多个PDF文件，每个输出文件包含连续的若干页
PDF的解析、页面复制和序列化全部交给pypdf完成
"""

import os
import math
import logging
import threading
from io import BytesIO
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pypdf import PdfReader, PdfWriter
from tqdm import tqdm

logger = logging.getLogger(__name__)


class PdfSplitError(Exception):
    """PDF拆分错误的基类"""


class SplitPreconditionError(PdfSplitError, ValueError):
    """调用参数不满足前置条件（未加载文档、页数或并发数不是正整数）"""


class PdfParseError(PdfSplitError):
    """源文件无法被解析为PDF"""


class ChunkWriteError(PdfSplitError):
    """一个或多个拆分文件生成失败"""

    def __init__(self, failures: List[Tuple["OutputChunk", Exception]]):
        self.failures = failures
        names = ", ".join(chunk.filename for chunk, _ in failures)
        super().__init__(f"{len(failures)} 个拆分文件生成失败: {names}")


@dataclass(frozen=True)
class SourceDocument:
    """已读入内存的源PDF文件"""
    filename: str
    content: bytes


@dataclass(frozen=True)
class OutputChunk:
    """一个输出文件对应的页面范围 [start, end)，页码从0开始"""
    index: int  # 从1开始的序号
    start: int
    end: int
    filename: str

    @property
    def page_count(self) -> int:
        return self.end - self.start


@dataclass
class SplitResult:
    """拆分结果"""
    source: str
    page_count: int
    chunks: List[OutputChunk] = field(default_factory=list)
    output_files: List[str] = field(default_factory=list)


@dataclass
class SplitConfig:
    """拆分配置"""
    pages_per_file: Optional[int] = None
    max_concurrent: Optional[int] = None
    show_progress: bool = False
    log_level: str = "INFO"


def _positive_int_from_env(name: str) -> Optional[int]:
    raw = os.getenv(name, "")
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"无效的{name}: {raw}")
        return None
    if value < 1:
        logger.warning(f"无效的{name}: {raw}")
        return None
    return value


def load_config_from_env() -> SplitConfig:
    """
    从环境变量加载配置

    Returns:
        SplitConfig对象
    """
    config = SplitConfig()

    config.pages_per_file = _positive_int_from_env("SPLIT_PAGES_PER_FILE")
    config.max_concurrent = _positive_int_from_env("SPLIT_MAX_CONCURRENT")

    show_progress = os.getenv("SPLIT_SHOW_PROGRESS", "")
    if show_progress:
        config.show_progress = show_progress.strip().lower() in ("1", "true", "yes", "on")

    log_level = os.getenv("SPLIT_LOG_LEVEL", "")
    if log_level:
        if isinstance(logging.getLevelName(log_level.upper()), int):
            config.log_level = log_level.upper()
        else:
            logger.warning(f"无效的SPLIT_LOG_LEVEL: {log_level}")

    return config


def load_pdf_file(filepath: str) -> SourceDocument:
    """
    读取PDF文件的全部内容

    Args:
        filepath: PDF文件路径，原样记录，用于生成输出文件名

    Returns:
        SourceDocument对象
    """
    try:
        with open(filepath, "rb") as f:
            content = f.read()
    except OSError as e:
        logger.error(f"加载PDF文件失败: {e}")
        raise

    logger.info(f"已加载PDF文件: {filepath} ({len(content)} 字节)")
    return SourceDocument(filename=filepath, content=content)


def open_pdf(document: Optional[SourceDocument]) -> PdfReader:
    """
    解析已加载的PDF内容

    加密的文件会尝试用空密码打开，而不是直接拒绝。

    Args:
        document: load_pdf_file返回的文档

    Returns:
        PdfReader对象
    """
    if document is None:
        raise SplitPreconditionError("未加载PDF文件")

    try:
        reader = PdfReader(BytesIO(document.content), strict=False)
        if reader.is_encrypted:
            logger.warning(f"PDF文件已加密，尝试使用空密码打开: {document.filename}")
            if not reader.decrypt(""):
                raise PdfParseError(f"无法解密PDF文件: {document.filename}")
        # 读取页数会解析页面树，结构错误在这里暴露
        len(reader.pages)
    except PdfParseError as e:
        logger.error(f"解析PDF文件失败: {e}")
        raise
    except Exception as e:
        logger.error(f"解析PDF文件失败: {document.filename}: {e}")
        raise PdfParseError(f"无法解析PDF文件 {document.filename}: {e}") from e

    return reader


def output_filename(source_path: str, index: int) -> str:
    """源路径去掉结尾的.pdf（区分大小写），加上 _part<序号>.pdf"""
    base = source_path[:-4] if source_path.endswith(".pdf") else source_path
    return f"{base}_part{index}.pdf"


def plan_chunks(source_path: str, page_count: int, pages_per_file: int) -> List[OutputChunk]:
    """
    计算每个输出文件的页面范围

    Args:
        source_path: 源文件路径
        page_count: 源文件总页数
        pages_per_file: 每个输出文件的页数

    Returns:
        按序号升序排列的OutputChunk列表，页数为0时返回空列表
    """
    if pages_per_file < 1:
        raise SplitPreconditionError(f"每个文件的页数必须是正整数: {pages_per_file}")
    if page_count < 0:
        raise SplitPreconditionError(f"总页数不能为负数: {page_count}")

    num_files = math.ceil(page_count / pages_per_file)
    chunks = []
    for i in range(num_files):
        start = i * pages_per_file
        end = min(start + pages_per_file, page_count)
        chunks.append(OutputChunk(
            index=i + 1,
            start=start,
            end=end,
            filename=output_filename(source_path, i + 1)
        ))
    return chunks


def build_chunk(reader: PdfReader, chunk: OutputChunk, copy_lock: threading.Lock) -> bytes:
    """
    把页面 [start, end) 复制到新文档并序列化

    PdfReader不支持并发读取，复制页面时持有copy_lock；
    add_page会把页面对象克隆进writer，之后的序列化不再访问reader。
    """
    writer = PdfWriter()
    with copy_lock:
        for page_num in range(chunk.start, chunk.end):
            writer.add_page(reader.pages[page_num])

    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def _write_output(filename: str, data: bytes):
    with open(filename, "wb") as output_pdf:
        output_pdf.write(data)


def _split_chunk(reader: PdfReader, chunk: OutputChunk, copy_lock: threading.Lock) -> str:
    data = build_chunk(reader, chunk, copy_lock)
    _write_output(chunk.filename, data)
    logger.info(f"已保存拆分文件: {chunk.filename} (第{chunk.start + 1}-{chunk.end}页)")
    return chunk.filename


def _run_chunk(reader: PdfReader, chunk: OutputChunk, copy_lock: threading.Lock,
               stop: threading.Event) -> Optional[str]:
    """执行一个拆分任务；已有任务失败时不再开始，返回None"""
    if stop.is_set():
        logger.info(f"已跳过拆分文件: {chunk.filename}")
        return None
    try:
        return _split_chunk(reader, chunk, copy_lock)
    except Exception:
        # 在future完成前置位，排队中的任务一定能看到
        stop.set()
        raise


def split_pdf_document(document: Optional[SourceDocument],
                       pages_per_file: int,
                       max_concurrent: int,
                       show_progress: bool = False) -> SplitResult:
    """
    按固定页数拆分PDF

    每个输出文件是一个独立任务，最多同时运行max_concurrent个；
    任务按序号提交，完成顺序不定。任一任务失败时，尚未开始的任务被取消，
    等正在运行的任务结束后抛出ChunkWriteError，已写出的文件保留在磁盘上。

    Args:
        document: load_pdf_file返回的文档
        pages_per_file: 每个输出文件的页数
        max_concurrent: 最大并发任务数
        show_progress: 是否显示tqdm进度条

    Returns:
        SplitResult对象
    """
    if document is None:
        raise SplitPreconditionError("未加载PDF文件")
    if pages_per_file < 1:
        raise SplitPreconditionError(f"每个文件的页数必须是正整数: {pages_per_file}")
    if max_concurrent < 1:
        raise SplitPreconditionError(f"最大并发数必须是正整数: {max_concurrent}")

    reader = open_pdf(document)
    page_count = len(reader.pages)
    chunks = plan_chunks(document.filename, page_count, pages_per_file)

    logger.info(f"总页数: {page_count}，将拆分为 {len(chunks)} 个文件")
    for chunk in chunks:
        logger.debug(f"  {chunk.filename}: 第{chunk.start + 1}-{chunk.end}页")

    result = SplitResult(source=document.filename, page_count=page_count, chunks=chunks)
    if not chunks:
        return result

    copy_lock = threading.Lock()
    stop = threading.Event()
    failures = []

    with ThreadPoolExecutor(max_workers=max_concurrent) as executor:
        future_map = {}
        for chunk in chunks:
            future_map[executor.submit(_run_chunk, reader, chunk, copy_lock, stop)] = chunk

        for future in tqdm(as_completed(future_map), total=len(future_map),
                           desc="拆分PDF", unit="file", disable=not show_progress):
            if future.cancelled():
                continue
            chunk = future_map[future]
            try:
                future.result()
            except Exception as e:
                logger.error(f"生成拆分文件失败 {chunk.filename}: {e}")
                failures.append((chunk, e))
                for pending in future_map:
                    pending.cancel()

    if failures:
        failures.sort(key=lambda item: item[0].index)
        error = ChunkWriteError(failures)
        logger.error(f"拆分PDF文件失败: {error}")
        raise error from failures[0][1]

    result.output_files = [chunk.filename for chunk in chunks]
    return result
