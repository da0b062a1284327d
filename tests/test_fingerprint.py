# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for fingerprint computation."""

from copilot_error_tracking import (
    compute_fingerprint,
    extract_frames,
    normalize_message,
    simple_hash,
)

JS_STACK = (
    "TypeError: x is undefined\n"
    "    at loadUser (https://app.example.com/static/js/main.chunk.js:10:5)\n"
    "    at async fetchAll (webpack:///src/api/users.ts:42:11)\n"
    "    at Object.<anonymous> (/srv/app/index.js:1:1)\n"
    "    at Module._compile (node:internal/modules/cjs/loader:1105:14)"
)


class TestNormalizeMessage:
    """Tests for message normalization."""

    def test_digits_replaced(self):
        """Test that standalone digit runs become {{n}}."""
        assert normalize_message("Failed to load user 12345") == "failed to load user {{n}}"

    def test_digits_inside_words_kept(self):
        """Test that digits attached to a word are not replaced."""
        assert normalize_message("user12345 failed") == "user12345 failed"

    def test_uuid_replaced_case_insensitive(self):
        """Test that UUIDs in any case become {{uuid}}."""
        message = "  Order 550e8400-E29B-41d4-a716-446655440000 not found  "
        assert normalize_message(message) == "order {{uuid}} not found"

    def test_long_quoted_string_replaced(self):
        """Test that quoted literals of 50+ characters are collapsed."""
        message = 'Invalid value "' + "x" * 60 + '" for field 42'
        assert normalize_message(message) == 'invalid value "{{str}}" for field {{n}}'

    def test_short_quoted_string_kept(self):
        """Test that short quoted literals are left alone."""
        assert normalize_message('Bad "value"') == 'bad "value"'

    def test_trims_javascript_whitespace(self):
        """Test BOM and ideographic spaces are trimmed like String.prototype.trim()."""
        assert normalize_message("\ufeff Boom\u3000") == "boom"

    def test_keeps_characters_javascript_does_not_trim(self):
        """Test separators that only Python treats as whitespace survive."""
        assert normalize_message("\x1cboom\x85") == "\x1cboom\x85"


class TestExtractFrames:
    """Tests for stack frame extraction."""

    def test_top_three_frames(self):
        """Test that only the first three 'at ' lines are used."""
        frames = extract_frames(JS_STACK)
        assert frames == [
            "loadUser@app.example.com",
            "async@users.ts",
            "Object.<anonymous>@index.js",
        ]

    def test_unmatched_line_kept_raw(self):
        """Test that a line without a file token is kept stripped."""
        assert extract_frames("   at anonymous   ") == ["at anonymous"]
        assert extract_frames("\ufeff at anonymous\ufeff") == ["at anonymous"]

    def test_no_frames(self):
        """Test that a stack without 'at ' lines yields no frames."""
        assert extract_frames("no frames here") == []


class TestSimpleHash:
    """Tests for the two-seed djb2 hash."""

    def test_empty_string_is_seeds(self):
        """Test that hashing nothing returns the zero-padded seeds."""
        assert simple_hash("") == "000015050000cde7"

    def test_known_value(self):
        """Test a known value for parity with the other clients."""
        assert simple_hash("hello") == "0a9cede74ae0b4c5"

    def test_utf16_code_units(self):
        """Test that non-BMP characters hash as surrogate pairs."""
        assert simple_hash("café ünïcode 😀") == "fbeb7ba5b8869dc7"

    def test_output_shape(self):
        """Test the output is 16 lowercase hex characters."""
        value = simple_hash("anything at all")
        assert len(value) == 16
        assert value == value.lower()
        int(value, 16)


class TestComputeFingerprint:
    """Tests for compute_fingerprint."""

    def test_digit_normalization_groups_messages(self):
        """Test messages differing only by numbers share a fingerprint."""
        first = compute_fingerprint("Failed to load user 12345")
        second = compute_fingerprint("Failed to load user 99999")
        assert first == second == "c2fb8f441f92f0a6"

    def test_uuid_normalization_groups_messages(self):
        """Test messages differing only by UUID share a fingerprint."""
        first = compute_fingerprint("Order 550e8400-e29b-41d4-a716-446655440000 not found")
        second = compute_fingerprint("Order 123e4567-E89B-12D3-A456-426614174000 not found")
        assert first == second == "43919925e481fe07"

    def test_stack_frames_included(self):
        """Test fingerprint with frames matches the other clients."""
        assert compute_fingerprint("TypeError: x is undefined", JS_STACK) == "78e20f4af7ef6368"

    def test_frame_from_python_path(self):
        """Test a single frame with a file path."""
        stack = "Error: Request failed\n    at handler (/srv/app/routes.py:12:3)"
        assert compute_fingerprint("Request failed", stack) == "582de0be7314f1dc"

    def test_stack_without_frames_appends_separator(self):
        """Test a stack with no frames still changes the key."""
        assert compute_fingerprint("boom", "no frames here") == "0a77da5649e8ddb4"
        assert compute_fingerprint("boom", "no frames here") != compute_fingerprint("boom")

    def test_empty_stack_ignored(self):
        """Test an empty stack string is treated as no stack."""
        assert compute_fingerprint("boom", "") == compute_fingerprint("boom")

    def test_byte_order_marks_trimmed(self):
        """Test a message wrapped in BOMs groups with the other clients."""
        assert compute_fingerprint("\ufeffboom\ufeff") == "7c703cea8de044c8"
        assert compute_fingerprint("\ufeffboom\ufeff") == compute_fingerprint("boom")

    def test_deterministic(self):
        """Test repeated computation gives the same result."""
        assert compute_fingerprint("same") == compute_fingerprint("same")
