# unintel

`unintel` is a set of building blocks for an agent that keeps thoughts and
memories in Redis and calls on them later. It defines the thought records and
the storage interface. It ranks thoughts by text and scores memory candidates
by hybrid relevance. It runs search, read, update and delete over embedding
hashes indexed by RediSearch. It also asks a Groq chat model to turn retrieved
memories into an answer.

## Installation

```
pip install unintel
```

The test suite needs the `test` extra:

```
pip install "unintel[test]"
```

The package does not bring its own Redis client. The functions that talk to
Redis take a connection from you. It must be an async client with
`execute_command`, `pipeline`, `scan` and `delete`, for example one from
`redis.asyncio`, which you install yourself.

## Modules

- `unintel.models` holds the records that move through the system:
  `ThoughtRecord` (with `create`, `to_dict` and `from_dict`), `ChainMetadata`,
  `Thought`, `QueryIntent`, `ChatMessage`, `GroqRequest`, `GroqResponse`,
  `GroqUsage` and `Choice`. It also has the abstract `ThoughtRepository`
  interface, and `UiRememberParams`, `UiRememberResult` and `NextAction` for
  the remember tool.
- `unintel.validation` provides `InputValidator`, which checks thought content,
  chain ids, thought numbering and instance ids. Each failure raises its own
  subclass of `ValidationError`: `EmptyThoughtError`, `ThoughtTooLongError`,
  `InvalidChainIdError`, `InvalidThoughtNumberError` and
  `InvalidInstanceIdError`. If you do not pass limits, they come from the
  `MAX_THOUGHT_LENGTH` and `MAX_THOUGHTS_PER_CHAIN` environment variables. The
  defaults are 10000 and 1000.
- `unintel.transport` provides `GroqTransport`, which posts chat completions
  with `httpx`. A request is tried up to five times. Between tries it waits a
  jittered exponential delay (`backoff_delay`) that starts at 200 ms and never
  exceeds 30 s. When it gives up it raises `TransportError`.
- `unintel.synth` provides `GroqSynth`. It builds a context from the newest
  thoughts that fit a token budget (`build_context`) and picks the system
  prompt for the style (`system_prompt`). The "deep" style uses the deep model,
  with a larger budget and more output tokens. The result is a `SynthResult`.
  `SynthesisError` is raised when the reply has no choices.
- `unintel.search` provides `EnhancedSearchEngine`, which ranks a list of
  `ThoughtRecord`s in memory. It scores each thought by exact substring,
  subsequence fuzzy match (`fuzzy_match`), character n-grams and a simplified
  BM25. Each result is an `EnhancedSearchResult` with a `SearchMatchType`.
- `unintel.search_cache` provides `SearchCache`, which keeps results for a
  fixed number of seconds. It also has batched SCAN / `JSON.GET` search over
  `thought:{instance}:*` keys: `batch_fetch_thoughts`, `search_with_batching`
  and `search_paginated`.
- `unintel.memory` provides `ui_memory`, which runs the `help`, `search`,
  `read`, `update` and `delete` actions on embedding hashes. Alongside it are
  the helpers `build_search_query`, `determine_indexes`, `extract_doc_ids`,
  `parse_memory_row`, `parse_key_scope` and `short_hash`. An update that
  changes content re-embeds the text through an `embed` coroutine that you
  supply.
- `unintel.remember` holds the scoring helpers for conversational memory:
  `parse_action`, `compute_feedback_scoring`, `extract_doc_ids_and_scores`,
  `instances_from_index_list`, `recency_score`, and `combined_score` with
  `HybridWeights`.
- `unintel.visual` provides `VisualOutput`, which writes coloured progress lines
  to standard error or to a stream you pass in. It also has the helpers
  `truncate_uuid` and `wrap_line`, and the `WorkflowState` banners.

## Examples

Synthesising an answer:

```python
import asyncio

from unintel.models import QueryIntent
from unintel.synth import GroqSynth
from unintel.transport import GroqTransport


async def main():
    transport = GroqTransport(api_key="placeholder")
    synth = GroqSynth(transport, "fast-model", "deep-model")
    intent = QueryIntent(original_query="What did we decide about caching?")
    result = await synth.synth(intent, [])
    print(result.model_used, result.text)


asyncio.run(main())
```

Validation:

```python
from unintel.validation import EmptyThoughtError, InputValidator

validator = InputValidator()
validator.validate_thought_numbers(1, 5)
try:
    validator.validate_thought_content("   ")
except EmptyThoughtError as exc:
    print(exc)
```

Ranking thoughts in memory:

```python
from unintel.models import ThoughtRecord
from unintel.search import EnhancedSearchEngine

thoughts = [ThoughtRecord.create("CC", "This is a test thought", 1, 1)]
for result in EnhancedSearchEngine().search_thoughts(thoughts, "test"):
    print(result.match_type, result.total_score)
```

Memory actions against an async Redis connection:

```python
from unintel.memory import ui_memory

result = await ui_memory(conn, {"action": "search", "query": "vector db"}, "CC")
print(result.to_dict())
```

## What the package does not do

It has no server and no command-line tool. It does not expose its functions as
agent tools over any protocol. It has no Redis-backed implementation of
`ThoughtRepository`: you implement the storage of thoughts and chains yourself.
It also has no end-to-end remember flow. Storing the user's thought, retrieving
context, synthesising and recording feedback is left to the caller, who can
build it from `unintel.remember`, `unintel.synth` and a repository. Nothing the
package writes is given a time to live.