#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
请求头管理器模块 - 上游请求的浏览器伪装头

上游只接受来自 nanobananaprompt.org 页面的浏览器请求，
这里的取值需与真实浏览器流量逐字一致（包括大小写和顺序）。
"""

from functools import lru_cache
from typing import Dict

from furl import furl

SITE_ORIGIN = "https://nanobananaprompt.org"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/142.0.0.0 Safari/537.36"
)

SEC_CH_UA = '"Chromium";v="142", "Google Chrome";v="142", "Not_A Brand";v="99"'

_DEFAULT_PORTS = {"http": 80, "https": 443}


@lru_cache(maxsize=8)
def _header_template(host: str) -> Dict[str, str]:
    return {
        "Host": host,
        "Origin": SITE_ORIGIN,
        "Referer": f"{SITE_ORIGIN}/",
        "User-Agent": USER_AGENT,
        "Content-Type": "application/json",
        "Accept": "*/*",
        "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
        "sec-ch-ua": SEC_CH_UA,
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "empty",
        "sec-fetch-mode": "cors",
        "sec-fetch-site": "cross-site",
        "priority": "u=1, i",
    }


def upstream_host(upstream_url: str) -> str:
    """Host header value for the upstream URL, port included when explicit."""
    url = furl(upstream_url)
    if url.port and url.port != _DEFAULT_PORTS.get(url.scheme):
        return f"{url.host}:{url.port}"
    return url.host


def get_disguise_headers(upstream_url: str) -> Dict[str, str]:
    """
    构建伪装请求头

    Args:
        upstream_url: 上游地址，用于生成 Host 头

    Returns:
        新的 headers 字典（调用方可自由修改）
    """
    return dict(_header_template(upstream_host(upstream_url)))
