#!/usr/bin/env python3
"""
Inspect a TFLite model before deploying it.

This utility helps verify that:
1. The model loads with tflite_runtime
2. The input tensor is an NHWC RGB image the preprocessor can feed
3. The output shape maps onto a supported detection layout
4. A blank frame decodes without errors (and how long it takes)

Usage:
    python tools/inspect_model.py --model assets/models/model.tflite
    python tools/inspect_model.py --model model.tflite --labels labels.txt --runs 20
"""

import argparse
import os
import sys
import time

# Add project directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

import numpy as np

from decoding import DetectionDecoder, InvalidShape, infer_layout, load_labels
from inference import TFLiteConfig, TFLiteEngine, prepare_input


def describe_layout(output_shape):
    print("=" * 70)
    print("Output layout")
    print("=" * 70)
    try:
        layout = infer_layout(output_shape)
    except InvalidShape as e:
        print(f"✗ {e}")
        print("  The decoder will fall back to the default layout for this model.")
        return False

    print(f"✓ {layout.name}: {layout.detection_count} candidates x {layout.value_count} values")
    return True


def time_inference(engine, decoder, runs):
    print("=" * 70)
    print(f"Inference ({runs} runs on a blank frame)")
    print("=" * 70)
    blank = np.zeros((engine.input_shape[1], engine.input_shape[2], 3), dtype=np.uint8)
    tensor = prepare_input(blank, engine.input_shape, engine.input_dtype)

    timings = []
    records = []
    for _ in range(runs):
        start = time.perf_counter()
        output = engine.run(tensor)
        records = decoder.decode(output)
        timings.append((time.perf_counter() - start) * 1000.0)

    print(f"  mean: {np.mean(timings):.1f} ms   p95: {np.percentile(timings, 95):.1f} ms")
    print(f"  detections on blank frame: {len(records)}")
    stats = decoder.last_stats
    if stats is not None:
        print(f"  confidence range: {stats.min_confidence} .. {stats.max_confidence}")
        print(f"  skipped (invalid / out of range): {stats.skipped_invalid} / {stats.skipped_out_of_range}")


def main():
    parser = argparse.ArgumentParser(description="Inspect a TFLite detection model")
    parser.add_argument("--model", required=True, help="Path to .tflite model")
    parser.add_argument("--labels", default=None, help="Path to labels.txt")
    parser.add_argument("--threads", type=int, default=2)
    parser.add_argument("--runs", type=int, default=10)
    args = parser.parse_args()

    try:
        engine = TFLiteEngine(TFLiteConfig(model_path=args.model, num_threads=args.threads))
    except (ImportError, OSError, ValueError) as e:
        print(f"✗ Failed to load model: {e}")
        return 1

    print(f"Input:  {list(engine.input_shape)} {engine.input_dtype}")
    print(f"Output: {list(engine.output_shape)}")

    ok = describe_layout(engine.output_shape)
    labels = load_labels(args.labels) if args.labels else None
    if labels is not None:
        print(f"Labels: {len(labels)}")

    decoder = DetectionDecoder(engine.output_shape, labels=labels)
    if args.runs > 0:
        time_inference(engine, decoder, args.runs)

    engine.close()
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
