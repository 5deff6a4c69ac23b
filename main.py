#!/usr/bin/env python3
"""
Scripture RAG - Command-line entry point.

Usage:
    # Retrieve passages for a question
    python main.py query "What is desireless action?" --shards gita_arnold upanishads_sbe

    # Print the {id, text, work} triples sent to the answer service
    python main.py query "meaning of life" --json

    # Check a shard's files
    python main.py inspect gita_arnold
"""
import argparse
import sys
import json
import logging

from config import (
    DEFAULT_SHARDS,
    KNOWN_SHARDS,
    LoaderConfig,
    EmbeddingConfig,
    RetrievalConfig
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_loader():
    """Shard loader for the configured source."""
    from scripture_rag.loading import ShardLoader, LocalShardSource, HttpShardSource

    if LoaderConfig.SHARD_BASE_URL:
        source = HttpShardSource(
            LoaderConfig.SHARD_BASE_URL,
            timeout=LoaderConfig.TIMEOUT,
            max_retries=LoaderConfig.MAX_RETRIES,
            retry_delay=LoaderConfig.RETRY_DELAY
        )
    else:
        source = LocalShardSource(LoaderConfig.SHARD_DIR)

    logger.info(f"Shard source: {source!r}")
    return ShardLoader(source, manifest_name=LoaderConfig.MANIFEST_NAME)


def build_embedder(stub: bool = False):
    """Query embedding function."""
    from scripture_rag.embeddings import Embedder, HashEmbedder

    if stub or EmbeddingConfig.USE_STUB:
        logger.info("Using hash embedder (no model)")
        return HashEmbedder(EmbeddingConfig.DIMENSION)
    return Embedder(EmbeddingConfig.MODEL, device=EmbeddingConfig.DEVICE)


def run_query(query: str, shards, top_final: int, as_json: bool, stub: bool, verbose: bool) -> int:
    """
    Load shards, build the corpus and print retrieval results.

    Returns:
        Process exit code
    """
    from scripture_rag.loading import ShardCache
    from scripture_rag.corpus import CorpusManager
    from scripture_rag.retrieval import (
        HybridRetriever,
        RetrievalOptions,
        to_answer_contexts,
        source_snippets
    )

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    cache = ShardCache(build_loader(), max_workers=LoaderConfig.MAX_WORKERS)
    manager = CorpusManager(cache, bm25_k1=RetrievalConfig.BM25_K1, bm25_b=RetrievalConfig.BM25_B)

    selection = manager.select(shards)
    for shard_id, error in selection.errors.items():
        logger.error(f"Shard {shard_id}: {error}")

    options = RetrievalOptions(
        k_vector=RetrievalConfig.K_VECTOR,
        k_lexical=RetrievalConfig.K_LEXICAL,
        top_final=top_final,
        lexical_weight=RetrievalConfig.LEXICAL_WEIGHT,
        min_results=RetrievalConfig.MIN_RESULTS,
        min_distinct_refs=RetrievalConfig.MIN_DISTINCT_REFS,
        merged_limit=RetrievalConfig.MERGED_LIMIT,
        use_expansion=RetrievalConfig.USE_QUERY_EXPANSION
    )
    retriever = HybridRetriever(manager, build_embedder(stub), options, verbose=verbose)
    outcome = retriever.retrieve(query)

    if not outcome.ready:
        print("Sources not loaded.", file=sys.stderr)
        return 1

    if as_json:
        print(json.dumps(
            {'question': query, 'contexts': to_answer_contexts(outcome.chunks)},
            indent=2,
            ensure_ascii=False
        ))
        return 0

    if outcome.expanded:
        print(f"Expanded query: {outcome.expanded_query}\n")

    snippets = source_snippets(outcome.chunks, RetrievalConfig.SNIPPET_CHARS)
    for i, (chunk, entry) in enumerate(zip(outcome.chunks, snippets), 1):
        print(f"{i}. [{chunk.score:.4f}] {entry['ref']} [{entry['work'] or chunk.shard}]")
        print(f"   {entry['snippet']}\n")

    if verbose:
        print(retriever.log.get_summary())
    return 0


def run_inspect(shard_id: str) -> int:
    """Load one shard and print its statistics."""
    from scripture_rag.errors import RetrievalError
    from scripture_rag.models import resolve_reference

    loader = build_loader()
    try:
        manifest = loader.load_manifest(shard_id)
        shard = loader.load(shard_id)
    except RetrievalError as e:
        logger.error(f"Could not load shard: {e}")
        return 1

    refs = sum(1 for r in shard.records if resolve_reference(r))
    print(f"Shard:        {shard.name} ({KNOWN_SHARDS.get(shard.name, 'unlisted')})")
    print(f"Records:      {shard.count} (manifest count: {manifest.count})")
    print(f"Dimension:    {shard.dim}")
    print(f"With refs:    {refs}/{shard.count}")
    print(f"Files:        {manifest.combined_chunks}, {manifest.embeddings_bin}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Hybrid retrieval over scripture shards"
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    query_parser = subparsers.add_parser('query', help='Retrieve passages for a question')
    query_parser.add_argument('text', help='Question text')
    query_parser.add_argument(
        '--shards', nargs='+', default=DEFAULT_SHARDS,
        help=f"Shards to search (known: {', '.join(KNOWN_SHARDS)})"
    )
    query_parser.add_argument('--top-final', type=int, default=RetrievalConfig.TOP_FINAL)
    query_parser.add_argument('--json', action='store_true', help='Print answer-service contexts')
    query_parser.add_argument('--stub-embedder', action='store_true', help='Use the hash embedder')
    query_parser.add_argument('-v', '--verbose', action='store_true')

    inspect_parser = subparsers.add_parser('inspect', help='Check one shard')
    inspect_parser.add_argument('shard', help='Shard identifier')

    args = parser.parse_args()

    if args.command == 'query':
        sys.exit(run_query(
            args.text, args.shards, args.top_final, args.json,
            args.stub_embedder, args.verbose
        ))
    elif args.command == 'inspect':
        sys.exit(run_inspect(args.shard))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
