"""Built-in jinja2 templates for the artifacts routegen writes."""

# lib/<src>/{api}/<import_path>/types.ts, as extracted from the route
TYPES_FILE = """\
{% for decl in type_declarations %}
{{ decl.text }}
{% endfor %}

export type {{ params.id }} = {
{% for p in params_schema %}
  {{ p.name | tojson }}{{ "" if p.is_required else "?" }}: {{ p.refinement or ("Array<string>" if p.is_rest else "string") }};
{% endfor %}
};
{% for t in payload_types %}

export type {{ t.id }} = {{ t.text }};
{% endfor %}
{% for t in response_types %}

export type {{ t.id }} = {{ t.text }};
{% endfor %}
"""

# same file, after literal type resolution
RESOLVED_TYPES_FILE = """\
{% for t in resolved_types %}
export type {{ t.name }} = {{ t.text }};

{% endfor %}
"""

STUB_API_ROUTE = """\
import { defineRoute } from "{{ use_import }}";

export default defineRoute(({ GET }) => [
  GET(async (ctx) => {
    ctx.body = "Automatically generated route: [ {{ route.name }} ]";
  }),
]);
"""

STUB_PAGES = {
    ".tsx": """\
export default function Page() {
  return <div>Automatically generated page: [ {{ route.name }} ]</div>;
}
""",
    ".vue": """\
<template>
  <div>Automatically generated page: [ {{ route.name }} ]</div>
</template>
""",
    ".svelte": """\
<div>Automatically generated page: [ {{ route.name }} ]</div>
""",
    ".ts": """\
export default {{ route.name | tojson }};
""",
}

# lib/<src>/{api}/<import_path>/index.ts
API_ROUTE_LIB = """\
import type { {{ route.params.id }} } from "./types";

export const name = {{ route.name | tojson }};
export const methods = {{ route.methods | list | tojson }};
export const paramsSchema = {{ params_schema | tojson }};
// path segments that must be coerced from string before validation
export const numericParams = {{ route.numeric_params | list | tojson }};
export const optionalParams = {{ "true" if route.optional_params else "false" }};

export type Params = {{ route.params.id }};
"""

# lib/<src>/{api}.ts, routes pre-sorted by specificity
API_INDEX = """\
{% for route in routes %}
import {{ route.import_name }} from "{{ route.import_api }}";
{% endfor %}

export const routes = [
{% for route in routes %}
  {
    name: {{ route.name | tojson }},
    path: {{ route.path | tojson }},
    methods: {{ route.methods | tojson }},
    numericParams: {{ route.numeric_params | tojson }},
{% if route.meta %}
    meta: {{ route.meta }},
{% endif %}
    module: {{ route.import_name }},
  },
{% endfor %}
];
"""

# lib/<src>/{fetch}/_runtime.ts
FETCH_RUNTIME = """\
export const base = {{ api_url | tojson }};

export type Segment =
  | { static: string }
  | { param: string; optional: boolean; rest: boolean };

export const buildPath = (
  segments: Array<Segment>,
  params: Record<string, unknown> = {},
): string => {
  const parts: Array<string> = [];
  for (const segment of segments) {
    if ("static" in segment) {
      parts.push(segment.static);
      continue;
    }
    const value = params[segment.param];
    if (value === undefined || value === null) {
      if (segment.optional || segment.rest) {
        continue;
      }
      throw new Error(`Missing required param: ${segment.param}`);
    }
    if (segment.rest && Array.isArray(value)) {
      parts.push(...value.map((e) => encodeURIComponent(String(e))));
    } else {
      parts.push(encodeURIComponent(String(value)));
    }
  }
  return [base.replace(/\\/+$/, ""), ...parts].join("/");
};

export const request = async (
  method: string,
  url: string,
  init?: RequestInit,
): Promise<unknown> => {
  const response = await fetch(url, { ...init, method });
  if (!response.ok) {
    throw new Error(`${method} ${url} failed: ${response.status}`);
  }
  const type = response.headers.get("content-type") || "";
  return type.includes("application/json") ? response.json() : response.text();
};
"""

# lib/<src>/{fetch}/<import_path>/index.ts
FETCH_ROUTE = """\
import { buildPath, request, type Segment } from "{{ runtime_import }}";
import type { {{ route.params.id }} } from "{{ types_import }}";

const segments: Array<Segment> = {{ segments | tojson }};

export const path = (params{{ "?" if route.optional_params else "" }}: {{ route.params.id }}): string =>
  buildPath(segments, params);
{% for method in route.methods %}

export const {{ method }} = (
  params{{ "?" if route.optional_params else "" }}: {{ route.params.id }},
  init?: RequestInit,
) => request({{ method | tojson }}, path(params), init);
{% endfor %}
"""

# lib/<src>/{fetch}.ts
FETCH_INDEX = """\
{% for route in routes %}
export * as {{ route.import_name }} from "./{fetch}/{{ route.import_path }}";
{% endfor %}
"""
