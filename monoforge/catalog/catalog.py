"""Static template catalog.

Maps ``(category, choice)`` pairs to template bundles and holds the config
chain links (base and override configs) the resolver can reference.  The
default catalog is built once per process and is read-only afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache
from types import MappingProxyType

from monoforge.errors import UnknownTemplate

from . import generators as gen
from .bundles import ConfigCategory, ConfigEntry, TemplateBundle, TemplateFile


class TemplateCatalog:
    """Read-only registry of template bundles and config entries.

    Bundles are registered at construction time; lookups never mutate the
    catalog, so one instance is shared by every render in a run.
    """

    def __init__(
        self,
        bundles: Iterable[TemplateBundle],
        config_entries: Iterable[ConfigEntry],
    ) -> None:
        registry: dict[tuple[str, str], TemplateBundle] = {}
        for bundle in bundles:
            key = (bundle.category, bundle.choice)
            if key in registry:
                raise ValueError(f"Duplicate template bundle '{bundle.id}'")
            registry[key] = bundle

        entries: dict[str, ConfigEntry] = {}
        for entry in config_entries:
            if entry.id in entries:
                raise ValueError(f"Duplicate config entry '{entry.id}'")
            entries[entry.id] = entry

        self._bundles = MappingProxyType(registry)
        self._configs = MappingProxyType(entries)

    # -- Bundles -------------------------------------------------------------

    def get(self, category: str, choice: str, node_id: str = "") -> TemplateBundle:
        """Return the bundle for ``(category, choice)``.

        Raises:
            UnknownTemplate: No bundle is registered for the pair.
        """
        try:
            return self._bundles[(category, choice)]
        except KeyError:
            raise UnknownTemplate(category, choice, node_id) from None

    def bundle(self, bundle_id: str) -> TemplateBundle:
        """Look a bundle up by its ``<category>:<choice>`` id."""
        category, _, choice = bundle_id.partition(":")
        return self.get(category, choice)

    def choices(self, category: str, target: str | None = None) -> list[str]:
        """List registered choices in *category*, optionally only those
        applicable to *target* (an app kind or ``package:<kind>``)."""
        return [
            b.choice
            for (cat, _), b in self._bundles.items()
            if cat == category and (target is None or b.supports(target))
        ]

    # -- Config entries ------------------------------------------------------

    def config_entry(self, config_id: str) -> ConfigEntry | None:
        return self._configs.get(config_id)

    def base_config(self, category: ConfigCategory) -> ConfigEntry | None:
        """Return the single base entry for *category*, or ``None``."""
        for entry in self._configs.values():
            if entry.category == category and entry.base:
                return entry
        return None

    def config_entries(self) -> list[ConfigEntry]:
        """All config entries in registration order."""
        return list(self._configs.values())


# ---------------------------------------------------------------------------
# Default catalog data
# ---------------------------------------------------------------------------

_WEB = frozenset({"frontend", "admin"})
_UI = frozenset({"frontend", "admin", "mobile"})
_ANY = frozenset({"*"})

_TS_DEV = {"typescript": "^5.6.0"}


def _t(path: str, template: str) -> TemplateFile:
    return TemplateFile(path=path, template=template)


def _default_config_entries() -> list[ConfigEntry]:
    compiler, lint, fmt = ConfigCategory.COMPILER, ConfigCategory.LINT, ConfigCategory.FORMAT
    dom_lib = ["ES2022", "DOM", "DOM.Iterable"]
    return [
        ConfigEntry(
            id="compiler:base", category=compiler, path="base.json", base=True,
            generator=gen.compiler_config,
            settings={
                "target": "ES2022",
                "module": "ESNext",
                "moduleResolution": "Bundler",
                "strict": True,
                "declaration": True,
                "declarationMap": True,
                "sourceMap": True,
                "esModuleInterop": True,
                "isolatedModules": True,
                "resolveJsonModule": True,
                "skipLibCheck": True,
            },
        ),
        ConfigEntry(
            id="compiler:react", category=compiler, path="react.json",
            generator=gen.compiler_config,
            settings={"jsx": "react-jsx", "lib": dom_lib},
        ),
        ConfigEntry(
            id="compiler:next", category=compiler, path="next.json",
            generator=gen.compiler_config,
            settings={"jsx": "preserve", "lib": dom_lib, "plugins": [{"name": "next"}]},
        ),
        ConfigEntry(
            id="compiler:vue", category=compiler, path="vue.json",
            generator=gen.compiler_config,
            settings={"jsx": "preserve", "lib": dom_lib, "types": ["vite/client"]},
        ),
        ConfigEntry(
            id="compiler:react-native", category=compiler, path="react-native.json",
            generator=gen.compiler_config,
            settings={"jsx": "react-native", "lib": ["ES2022"]},
        ),
        ConfigEntry(
            id="compiler:node", category=compiler, path="node.json",
            generator=gen.compiler_config,
            settings={
                "module": "NodeNext",
                "moduleResolution": "NodeNext",
                "lib": ["ES2022"],
                "types": ["node"],
            },
        ),
        ConfigEntry(
            id="lint:base", category=lint, path="eslint/base.js", base=True,
            generator=gen.lint_config,
            settings={
                "ignores": ["dist/**", "node_modules/**"],
                "rules": {"eqeqeq": "error", "no-console": "warn", "prefer-const": "error"},
            },
        ),
        ConfigEntry(
            id="lint:react", category=lint, path="eslint/react.js",
            generator=gen.lint_config,
            settings={"files": ["**/*.tsx"], "rules": {"react/jsx-key": "error"}},
        ),
        ConfigEntry(
            id="lint:vue", category=lint, path="eslint/vue.js",
            generator=gen.lint_config,
            settings={"files": ["**/*.vue"], "rules": {"vue/multi-word-component-names": "off"}},
        ),
        ConfigEntry(
            id="lint:node", category=lint, path="eslint/node.js",
            generator=gen.lint_config,
            settings={"rules": {"no-console": "off", "no-process-exit": "error"}},
        ),
        ConfigEntry(
            id="format:base", category=fmt, path="prettier/base.js", base=True,
            generator=gen.format_config,
            settings={"semi": True, "singleQuote": False, "printWidth": 100, "trailingComma": "all"},
        ),
        ConfigEntry(
            id="format:tailwind", category=fmt, path="prettier/tailwind.js",
            generator=gen.format_config,
            settings={"plugins": ["prettier-plugin-tailwindcss"]},
        ),
        ConfigEntry(
            id="format:custom-preset", category=fmt, path="prettier/custom-preset.js",
            generator=gen.format_config,
            settings={"singleQuote": True, "printWidth": 80, "bracketSameLine": True},
        ),
    ]


def _default_bundles() -> list[TemplateBundle]:
    compiler, lint, fmt = ConfigCategory.COMPILER, ConfigCategory.LINT, ConfigCategory.FORMAT
    react_overrides = {compiler: "compiler:react", lint: "lint:react"}
    node_overrides = {compiler: "compiler:node", lint: "lint:node"}
    react_deps = {"react": "^19.0.0", "react-dom": "^19.0.0"}
    react_dev = {**_TS_DEV, "@types/react": "^19.0.0", "@types/react-dom": "^19.0.0"}

    return [
        # -- workspace ---------------------------------------------------------
        TemplateBundle(
            category="workspace", choice="node", targets=_ANY,
            files=(
                TemplateFile("package.json", generator=gen.node_package_json),
                TemplateFile("tsconfig.json", generator=gen.node_tsconfig),
                TemplateFile("eslint.config.js", generator=gen.node_eslint_config),
                TemplateFile("prettier.config.js", generator=gen.node_prettier_config),
            ),
            description="Per-node manifest and config entry points",
        ),
        TemplateBundle(
            category="workspace", choice="root", targets=_ANY,
            files=(
                _t("README.md", "workspace/README.md.j2"),
                _t(".gitignore", "workspace/gitignore.j2"),
            ),
        ),
        TemplateBundle(
            category="workspace", choice="monorepo-root", targets=_ANY,
            files=(
                TemplateFile("package.json", generator=gen.root_package_json),
                TemplateFile("tsconfig.json", generator=gen.root_tsconfig),
            ),
            dev_dependencies={
                **_TS_DEV,
                "eslint": "^9.12.0",
                "prettier": "^3.3.0",
            },
            scripts={
                "build": "tsc -b",
                "typecheck": "tsc -b --noEmit",
                "lint": "eslint .",
                "format": "prettier --write .",
            },
        ),
        # -- frameworks --------------------------------------------------------
        TemplateBundle(
            category="framework", choice="react", targets=_WEB,
            files=(
                _t("index.html", "framework/react/index.html.j2"),
                _t("src/main.tsx", "framework/react/main.tsx.j2"),
                _t("src/App.tsx", "framework/react/App.tsx.j2"),
            ),
            dependencies=react_deps,
            dev_dependencies={**react_dev, "vite": "^5.4.0", "@vitejs/plugin-react": "^4.3.0"},
            scripts={"dev": "vite", "build": "tsc -b && vite build", "preview": "vite preview"},
            config_overrides=react_overrides,
        ),
        TemplateBundle(
            category="framework", choice="next", targets=_WEB,
            files=(
                _t("src/app/layout.tsx", "framework/next/layout.tsx.j2"),
                _t("src/app/page.tsx", "framework/next/page.tsx.j2"),
            ),
            dependencies={**react_deps, "next": "^15.0.0"},
            dev_dependencies=react_dev,
            scripts={"dev": "next dev", "build": "next build", "start": "next start"},
            config_overrides={compiler: "compiler:next", lint: "lint:react"},
        ),
        TemplateBundle(
            category="framework", choice="vue", targets=_WEB,
            files=(
                _t("index.html", "framework/vue/index.html.j2"),
                _t("src/main.ts", "framework/vue/main.ts.j2"),
                _t("src/App.vue", "framework/vue/App.vue.j2"),
            ),
            dependencies={"vue": "^3.5.0"},
            dev_dependencies={**_TS_DEV, "vite": "^5.4.0", "@vitejs/plugin-vue": "^5.1.0", "vue-tsc": "^2.1.0"},
            scripts={"dev": "vite", "build": "vue-tsc -b && vite build"},
            config_overrides={compiler: "compiler:vue", lint: "lint:vue"},
        ),
        TemplateBundle(
            category="framework", choice="expo", targets=frozenset({"mobile"}),
            files=(_t("src/App.tsx", "framework/expo/App.tsx.j2"),),
            dependencies={"expo": "^52.0.0", "react": "^19.0.0", "react-native": "^0.76.0"},
            dev_dependencies={**_TS_DEV, "@types/react": "^19.0.0"},
            scripts={"start": "expo start", "android": "expo start --android", "ios": "expo start --ios"},
            config_overrides={compiler: "compiler:react-native", lint: "lint:react"},
        ),
        TemplateBundle(
            category="framework", choice="express", targets=frozenset({"backend"}),
            files=(_t("src/index.ts", "framework/express/index.ts.j2"),),
            dependencies={"express": "^4.21.0"},
            dev_dependencies={**_TS_DEV, "@types/express": "^5.0.0", "@types/node": "^22.7.0", "tsx": "^4.19.0"},
            scripts={"dev": "tsx watch src/index.ts", "build": "tsc -b", "start": "node dist/index.js"},
            config_overrides=node_overrides,
        ),
        TemplateBundle(
            category="framework", choice="fastify", targets=frozenset({"backend"}),
            files=(_t("src/index.ts", "framework/fastify/index.ts.j2"),),
            dependencies={"fastify": "^5.0.0"},
            dev_dependencies={**_TS_DEV, "@types/node": "^22.7.0", "tsx": "^4.19.0"},
            scripts={"dev": "tsx watch src/index.ts", "build": "tsc -b", "start": "node dist/index.js"},
            config_overrides=node_overrides,
        ),
        TemplateBundle(
            category="framework", choice="hono", targets=frozenset({"backend"}),
            files=(_t("src/index.ts", "framework/hono/index.ts.j2"),),
            dependencies={"hono": "^4.6.0", "@hono/node-server": "^1.13.0"},
            dev_dependencies={**_TS_DEV, "@types/node": "^22.7.0", "tsx": "^4.19.0"},
            scripts={"dev": "tsx watch src/index.ts", "build": "tsc -b"},
            config_overrides=node_overrides,
        ),
        # -- shared packages ---------------------------------------------------
        TemplateBundle(
            category="package", choice="types", targets=frozenset({"package:types"}),
            files=(_t("src/index.ts", "package/types/index.ts.j2"),),
            dev_dependencies=_TS_DEV,
            scripts={"build": "tsc -b"},
        ),
        TemplateBundle(
            category="package", choice="utils", targets=frozenset({"package:utils"}),
            files=(_t("src/index.ts", "package/utils/index.ts.j2"),),
            dev_dependencies=_TS_DEV,
            scripts={"build": "tsc -b"},
            requires_packages=("types",),
        ),
        TemplateBundle(
            category="package", choice="config", targets=frozenset({"package:config"}),
            files=(_t("README.md", "package/config/README.md.j2"),),
            description="Shared compiler, lint and format configs",
        ),
        TemplateBundle(
            category="package", choice="validation", targets=frozenset({"package:validation"}),
            files=(_t("src/index.ts", "package/validation/index.ts.j2"),),
            dependencies={"zod": "^3.23.0"},
            dev_dependencies=_TS_DEV,
            scripts={"build": "tsc -b"},
            requires_packages=("types",),
        ),
        TemplateBundle(
            category="package", choice="ui", targets=frozenset({"package:ui"}),
            files=(
                _t("src/index.ts", "package/ui/index.ts.j2"),
                _t("src/Button.tsx", "package/ui/Button.tsx.j2"),
            ),
            dependencies=react_deps,
            dev_dependencies=react_dev,
            scripts={"build": "tsc -b"},
            config_overrides=react_overrides,
            requires_packages=("types", "utils"),
        ),
        TemplateBundle(
            category="package", choice="database", targets=frozenset({"package:database"}),
            files=(_t("src/index.ts", "package/database/index.ts.j2"),),
            dev_dependencies={**_TS_DEV, "@types/node": "^22.7.0"},
            scripts={"build": "tsc -b"},
            config_overrides=node_overrides,
            requires_packages=("types",),
        ),
        # -- ORMs (database package, or the app itself in standalone layout) ----
        TemplateBundle(
            category="orm", choice="drizzle", targets=frozenset({"package:database", "backend"}),
            files=(
                _t("src/schema.ts", "orm/drizzle/schema.ts.j2"),
                _t("drizzle.config.ts", "orm/drizzle/drizzle.config.ts.j2"),
            ),
            dependencies={"drizzle-orm": "^0.35.0", "postgres": "^3.4.0"},
            dev_dependencies={"drizzle-kit": "^0.26.0"},
            scripts={"db:generate": "drizzle-kit generate", "db:migrate": "drizzle-kit migrate"},
        ),
        TemplateBundle(
            category="orm", choice="prisma", targets=frozenset({"package:database", "backend"}),
            files=(
                _t("prisma/schema.prisma", "orm/prisma/schema.prisma.j2"),
                _t("src/client.ts", "orm/prisma/client.ts.j2"),
            ),
            dependencies={"@prisma/client": "^5.21.0"},
            dev_dependencies={"prisma": "^5.21.0"},
            scripts={"db:generate": "prisma generate", "db:migrate": "prisma migrate dev"},
        ),
        TemplateBundle(
            category="orm", choice="kysely", targets=frozenset({"package:database", "backend"}),
            files=(_t("src/db.ts", "orm/kysely/db.ts.j2"),),
            dependencies={"kysely": "^0.27.0", "pg": "^8.13.0"},
            dev_dependencies={"@types/pg": "^8.11.0"},
        ),
        TemplateBundle(
            category="orm", choice="raw", targets=frozenset({"package:database", "backend"}),
            files=(_t("src/db.ts", "orm/raw/db.ts.j2"),),
            dependencies={"pg": "^8.13.0"},
            dev_dependencies={"@types/pg": "^8.11.0"},
        ),
        # -- styling -----------------------------------------------------------
        TemplateBundle(
            category="styling", choice="tailwind", targets=_WEB,
            files=(
                _t("src/styles.css", "styling/tailwind/styles.css.j2"),
                _t("tailwind.config.js", "styling/tailwind/tailwind.config.js.j2"),
            ),
            dev_dependencies={"tailwindcss": "^3.4.0", "prettier-plugin-tailwindcss": "^0.6.0"},
            config_overrides={fmt: "format:tailwind"},
        ),
        TemplateBundle(
            category="styling", choice="css-modules", targets=_UI,
            files=(_t("src/App.module.css", "styling/css-modules/App.module.css.j2"),),
        ),
        TemplateBundle(
            category="styling", choice="styled-components", targets=_UI,
            files=(_t("src/theme.ts", "styling/styled-components/theme.ts.j2"),),
            dependencies={"styled-components": "^6.1.0"},
        ),
        TemplateBundle(
            category="styling-override", choice="custom-preset", targets=_WEB,
            files=(_t("src/preset.css", "styling/custom-preset/preset.css.j2"),),
            config_overrides={fmt: "format:custom-preset"},
        ),
        # -- state management --------------------------------------------------
        TemplateBundle(
            category="state", choice="zustand", targets=_UI,
            files=(_t("src/store.ts", "state/zustand/store.ts.j2"),),
            dependencies={"zustand": "^5.0.0"},
        ),
        TemplateBundle(
            category="state", choice="redux", targets=_UI,
            files=(_t("src/store.ts", "state/redux/store.ts.j2"),),
            dependencies={"@reduxjs/toolkit": "^2.3.0", "react-redux": "^9.1.0"},
        ),
        TemplateBundle(
            category="state", choice="pinia", targets=_WEB,
            files=(_t("src/store.ts", "state/pinia/store.ts.j2"),),
            dependencies={"pinia": "^2.2.0"},
        ),
        # -- testing -----------------------------------------------------------
        TemplateBundle(
            category="testing", choice="vitest", targets=_ANY,
            files=(
                _t("vitest.config.ts", "testing/vitest/vitest.config.ts.j2"),
                _t("src/index.test.ts", "testing/vitest/index.test.ts.j2"),
            ),
            dev_dependencies={"vitest": "^2.1.0"},
            scripts={"test": "vitest run"},
        ),
        TemplateBundle(
            category="testing", choice="jest", targets=_ANY,
            files=(_t("jest.config.js", "testing/jest/jest.config.js.j2"),),
            dev_dependencies={"jest": "^29.7.0", "ts-jest": "^29.2.0", "@types/jest": "^29.5.0"},
            scripts={"test": "jest"},
        ),
        TemplateBundle(
            category="testing", choice="playwright", targets=_WEB,
            files=(
                _t("playwright.config.ts", "testing/playwright/playwright.config.ts.j2"),
                _t("e2e/home.spec.ts", "testing/playwright/home.spec.ts.j2"),
            ),
            dev_dependencies={"@playwright/test": "^1.48.0"},
            scripts={"test:e2e": "playwright test"},
        ),
    ]


@lru_cache(maxsize=1)
def default_catalog() -> TemplateCatalog:
    """The built-in catalog, constructed once per process."""
    return TemplateCatalog(_default_bundles(), _default_config_entries())
