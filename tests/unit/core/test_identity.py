# tests/unit/core/test_identity.py

"""
Unit tests for content id derivation.

The id must only depend on the compiled contracts and must not depend on the
insertion order of mapping keys.
"""

import hashlib
import json

from solstash.core.identity import ARTIFACT_ID_LENGTH, canonical_json, derive_artifact_id
from solstash.models.artifact import CompilerOutput

from tests.helpers.build_info_fixtures import compiler_output


class TestCanonicalJson:
    def test_key_order_does_not_matter(self):
        a = {"b": 1, "a": {"y": [1, 2], "x": "é"}}
        b = {"a": {"x": "é", "y": [1, 2]}, "b": 1}

        assert canonical_json(a) == canonical_json(b)

    def test_output_is_compact_and_ascii(self):
        assert canonical_json({"k": "é", "a": [1, 2]}) == '{"a":[1,2],"k":"\\u00e9"}'


class TestDeriveArtifactId:
    def test_fixed_length_hex(self):
        artifact_id = derive_artifact_id(CompilerOutput.model_validate(compiler_output()))

        assert len(artifact_id) == ARTIFACT_ID_LENGTH == 12
        int(artifact_id, 16)

    def test_matches_sha256_of_canonical_contracts(self):
        output = CompilerOutput.model_validate(compiler_output())
        payload = output.contracts_payload()
        expected = hashlib.sha256(
            json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()
        ).hexdigest()[:12]

        assert derive_artifact_id(output) == expected
        assert derive_artifact_id(payload) == expected

    def test_only_contracts_contribute(self):
        raw = compiler_output()
        with_sources = CompilerOutput.model_validate(raw)
        without_sources = CompilerOutput.model_validate({"contracts": raw["contracts"]})

        assert derive_artifact_id(with_sources) == derive_artifact_id(without_sources)

    def test_hex_prefix_is_irrelevant(self):
        bare = CompilerOutput.model_validate(compiler_output(hex_prefix=""))
        prefixed = CompilerOutput.model_validate(compiler_output(hex_prefix="0x"))

        assert derive_artifact_id(bare) == derive_artifact_id(prefixed)

    def test_reordered_keys_give_same_id(self):
        raw = compiler_output()["contracts"]
        contract = raw["src/Counter.sol"]["Counter"]
        reordered = {"src/Counter.sol": {"Counter": dict(reversed(list(contract.items())))}}

        assert derive_artifact_id(raw) == derive_artifact_id(reordered)

    def test_bytecode_change_changes_id(self):
        a = CompilerOutput.model_validate(compiler_output())
        b = CompilerOutput.model_validate(compiler_output(bytecode="60806040"))

        assert derive_artifact_id(a) != derive_artifact_id(b)
