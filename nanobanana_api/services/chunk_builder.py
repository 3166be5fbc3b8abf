#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
响应块构建器模块 - 封装 chat.completion / chat.completion.chunk 的构建逻辑
"""

import time
from typing import Any, Dict, Optional

import orjson

DONE_EVENT = "data: [DONE]\n\n"

ZERO_USAGE = {
    "prompt_tokens": 0,
    "completion_tokens": 0,
    "total_tokens": 0,
}


class ChunkBuilder:
    """响应块构建器类"""

    def build_chunk(
            self,
            completion_id: str,
            model: Optional[str],
            content: str = "",
            finish_reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """构建流式 chunk；无文本时 delta 为空对象"""
        return {
            'id': completion_id,
            'object': 'chat.completion.chunk',
            'created': int(time.time()),
            'model': model,
            'choices': [{
                'index': 0,
                'delta': {'content': content} if content else {},
                'finish_reason': finish_reason,
            }],
        }

    def to_sse(self, chunk: Dict[str, Any]) -> str:
        return f"data: {orjson.dumps(chunk).decode('utf-8')}\n\n"

    def build_completion(
            self,
            completion_id: str,
            model: Optional[str],
            content: str,
            usage: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """创建非流式 chat.completion 响应对象"""
        return {
            'id': completion_id,
            'object': 'chat.completion',
            'created': int(time.time()),
            'model': model,
            'choices': [{
                'index': 0,
                'message': {
                    'role': 'assistant',
                    'content': content,
                },
                'finish_reason': 'stop',
            }],
            'usage': usage if usage is not None else dict(ZERO_USAGE),
        }


# 全局单例实例
chunk_builder = ChunkBuilder()
