#!/usr/bin/env python3
"""Resumable Vimeo upload CLI.

Environment variables:
  VIMEO_ACCESS_TOKEN: bearer token with the "upload" scope.
  VIMEO_CLIENT_ID / VIMEO_CLIENT_SECRET: app credentials for --auth-only.
  VIMEO_TOKEN_FILE: where --auth-only stores the token (default: data/vimeo_token.json).

Usage:
  python tools/uploader_cli.py --file path.mp4 --name "Title" --description "desc"

Outputs JSON: {"videoId": 123, "uri": "/videos/123", "bytesWritten": 1048576, "status": "uploaded"}
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from config import load_config
from utils import err, log
from vimeo_client import AuthorizationClient, BinaryContent, FileTokenProvider, VimeoClient, VimeoError


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be zero or more, got {value}")
    return number


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Upload a video to Vimeo in verified, resumable chunks')
    parser.add_argument('--file', help='Video file path')
    parser.add_argument('--content-type', help='Override the guessed content type')
    parser.add_argument('--name', help='Video title to set after upload')
    parser.add_argument('--description', help='Video description to set after upload')
    parser.add_argument('--chunk-size', type=_positive_int, help='Bytes per chunk (default: UPLOAD_CHUNK_SIZE or 8 MiB)')
    parser.add_argument('--retry', type=_non_negative_int, help='Retries per chunk (default: UPLOAD_MAX_RETRIES or 5)')
    parser.add_argument('--auth-only', action='store_true', help='Only perform OAuth flow, no upload')
    return parser.parse_args(argv)


def _progress(done: int, total: int) -> None:
    log(f"Upload {int(done * 100 / total) if total else 100}% ({done}/{total} bytes)")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    cfg = load_config()
    if args.chunk_size is not None:
        cfg.chunk_size = args.chunk_size
    if args.retry is not None:
        cfg.max_retries = args.retry
    cfg.ensure_dirs()

    if args.auth_only:
        if not cfg.client_id or not cfg.client_secret:
            print(json.dumps({'error': 'VIMEO_CLIENT_ID and VIMEO_CLIENT_SECRET are required'}), file=sys.stderr)
            return 1
        auth = AuthorizationClient(
            cfg.client_id,
            cfg.client_secret,
            api_url=cfg.api_url,
            timeout=cfg.http_timeout_sec,
            relax_scope=True,
        )
        auth.authorize_installed_app(cfg.token_file, scopes=cfg.scopes, redirect_uri=cfg.redirect_uri)
        print(json.dumps({'status': 'authenticated'}))
        return 0

    if not args.file:
        print(json.dumps({'error': 'Missing required argument: --file'}), file=sys.stderr)
        return 1
    if not os.path.exists(args.file):
        print(json.dumps({'error': f"File not found: {args.file}"}), file=sys.stderr)
        return 1

    provider = None if cfg.access_token else FileTokenProvider(cfg.token_file)
    client = VimeoClient.from_config(cfg, token_provider=provider)
    try:
        with BinaryContent.from_file(args.file, args.content_type) as content:
            log(f"Uploading {args.file} ({content.length} bytes, {content.content_type})")
            result = client.upload_entire_file(content, on_progress=_progress)
        if result.clip_id is not None and (args.name or args.description):
            try:
                client.update_video_metadata(result.clip_id, name=args.name, description=args.description)
            except VimeoError as exc:
                # The upload itself succeeded, so the clip location is still reported.
                err(f"Uploaded video {result.clip_id} but could not update metadata: {exc}")
                print(json.dumps({
                    'error': str(exc),
                    'videoId': result.clip_id,
                    'uri': result.clip_uri,
                    'bytesWritten': result.bytes_written,
                }), file=sys.stderr)
                return 1
    except (VimeoError, OSError) as exc:
        err(str(exc))
        payload = {'error': str(exc)}
        written = getattr(exc, 'bytes_written', None)
        if written is not None:
            payload['bytesWritten'] = written
        print(json.dumps(payload), file=sys.stderr)
        return 1
    finally:
        client.close()

    print(json.dumps({
        'videoId': result.clip_id,
        'uri': result.clip_uri,
        'bytesWritten': result.bytes_written,
        'status': 'uploaded' if result.is_verified_complete else 'unverified',
    }))
    return 0 if result.is_verified_complete else 1


if __name__ == '__main__':
    sys.exit(main())
