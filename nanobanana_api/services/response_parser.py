#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
响应解析器模块 - 把上游 JSON 归一化为 (content, reasoning, usage)

上游返回格式：
    {"choices": [{"message": {"content": "...", "reasoning": "..."}}], "usage": {...}}

缺失或为 null 的字段一律按空处理，上游字段漂移不会影响后续格式化。
"""

from typing import Any

from ..helpers import debug_log
from ..schemas import UpstreamResult

THINKING_HEADER = "> **Thinking Process:**"
THINKING_SEPARATOR = "\n\n---\n\n"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class ResponseParser:
    """响应解析器类，封装上游响应内容解析逻辑"""

    def parse(self, data: Any) -> UpstreamResult:
        """从上游 JSON 的第一个 choice 中提取内容"""
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected upstream response type: {type(data).__name__}")

        message = {}
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            message = {}

        usage = data.get("usage")
        result = UpstreamResult(
            content=_as_text(message.get("content")),
            reasoning=_as_text(message.get("reasoning")),
            usage=usage if isinstance(usage, dict) else None,
        )
        debug_log(
            "[PARSER] 上游响应已解析",
            content_length=len(result.content),
            reasoning_length=len(result.reasoning),
            has_usage=result.usage is not None,
        )
        return result

    def format_reasoning(self, content: str, reasoning: str) -> str:
        """把推理过程以引用块形式置于正文之前

        > **Thinking Process:**
        > 第一行
        > 第二行

        ---

        正文
        """
        if not reasoning:
            return content
        quoted = reasoning.replace("\n", "\n> ")
        return f"{THINKING_HEADER}\n> {quoted}{THINKING_SEPARATOR}{content}"

    def final_content(self, result: UpstreamResult) -> str:
        return self.format_reasoning(result.content, result.reasoning)


# 全局单例实例
response_parser = ResponseParser()
