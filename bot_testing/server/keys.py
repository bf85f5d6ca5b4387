"""Typed application keys shared by the app factory and handlers."""

from aiohttp import web

from bot_testing.executors.base import TestExecutor
from bot_testing.orchestrator import SuiteOrchestrator
from bot_testing.reaper import RetentionReaper
from bot_testing.run_ids import RunIdAllocator
from bot_testing.store import ResultsStore
from bot_testing.transcripts import TranscriptLoader

STORE = web.AppKey("store", ResultsStore)
ALLOCATOR = web.AppKey("allocator", RunIdAllocator)
REAPER = web.AppKey("reaper", RetentionReaper)
ORCHESTRATOR = web.AppKey("orchestrator", SuiteOrchestrator)
EXECUTOR = web.AppKey("executor", TestExecutor)
LOADER = web.AppKey("loader", TranscriptLoader)
