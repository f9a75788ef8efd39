"""Compiler - runs the config -> script pipeline."""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from slc.cache.keys import fragment_fields, template_fields
from slc.cache.manager import CacheManager
from slc.cache.templates import TemplateCache
from slc.compiler.assembler import ScriptAssembler
from slc.compiler.spec import CompiledScript, FeatureFragment
from slc.config import Settings, StatuslineConfig, resolve_settings
from slc.exceptions import GenerationError, SlcError
from slc.features import ENCODERS, FeatureEncoder, StyleConfig, ordered_features
from slc.optimizer import Optimizer, ValidationReport, optimization_stats

log = logging.getLogger(__name__)


class Compiler:
    """Compiles StatuslineConfig into bash script text.

    One Compiler owns the process's CacheManager and hands it to every
    encoder, so nothing below this class holds global state.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[CacheManager] = None,
        template_cache: Optional[TemplateCache] = None,
        optimize: bool = True,
    ):
        self.settings = settings or resolve_settings()
        self.cache = cache or CacheManager(
            self.settings.cache_dir,
            ttl=self.settings.script_ttl,
            grace=self.settings.script_grace,
        )
        self.optimize = optimize
        self.encoders: List[FeatureEncoder] = [
            cls(self.cache, self.settings) for cls in ENCODERS
        ]
        self.template_cache = template_cache or TemplateCache(
            self.cache, self.settings, self.script_key
        )
        self.assembler = ScriptAssembler(self.settings)
        self.optimizer = Optimizer()

    def script_fields(self, config: StatuslineConfig) -> dict:
        """The discriminating fields of the script ``config`` compiles to."""
        feature_configs = {}
        for encoder in self.encoders:
            feature_config = encoder.configure(config)
            if feature_config is not None:
                feature_configs[encoder.name] = feature_config
        return template_fields(
            ordered_features(config.features),
            StyleConfig.from_config(config),
            config.logging,
            feature_configs,
            self.settings,
            self.optimize,
        )

    def script_key(self, config: StatuslineConfig) -> str:
        return self.cache.key("template", self.script_fields(config))

    def generate(self, config: StatuslineConfig) -> str:
        """Return the script text for ``config``, using every cache tier.

        Raises:
            GenerationError: If the script cannot be built.
        """
        text = self.template_cache.lookup(config)
        if text is not None:
            log.debug("Template cache hit")
            return text

        text = self.cache.get(
            self.script_key(config),
            refresh=lambda: self.compile(config).text,
        )
        self.template_cache.remember(config, text)
        return text

    def compile(self, config: StatuslineConfig) -> CompiledScript:
        """Run the full pipeline without consulting the script cache."""
        start = time.perf_counter()
        style = StyleConfig.from_config(config)

        try:
            fragments = self._fragments(config, style)
            raw = self.assembler.assemble(config, fragments, style)
        except GenerationError:
            raise
        except SlcError as e:
            raise GenerationError(str(e)) from e
        except Exception as e:
            raise GenerationError(f"{type(e).__name__}: {e}") from e

        if self.optimize:
            _, optimized, report = self.optimizer.optimize_checked(raw)
        else:
            optimized, report = raw, ValidationReport(is_valid=True)

        duration = time.perf_counter() - start
        log.debug(f"Compiled {len(fragments)} fragments in {duration * 1000:.1f}ms")
        return CompiledScript(
            raw=raw,
            optimized=optimized,
            report=report,
            stats=optimization_stats(raw, optimized),
            duration=duration,
        )

    def precompute_templates(self) -> dict:
        """Warm the template table with pipeline output."""
        return self.template_cache.precompute(lambda c: self.compile(c).text)

    def _fragments(
        self, config: StatuslineConfig, style: StyleConfig
    ) -> List[FeatureFragment]:
        fragments = []
        for encoder in self.encoders:
            feature_config = encoder.configure(config)
            if feature_config is None:
                continue
            key = self.cache.key(
                "fragment",
                fragment_fields(encoder.name, feature_config, style, self.settings),
            )
            fragments.append(
                self.cache.memoize(
                    key, lambda e=encoder, fc=feature_config: e.encode(fc, style)
                )
            )
        return fragments
