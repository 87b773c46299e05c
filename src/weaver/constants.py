"""Shared constants for the weaver operator."""

API_GROUP = "weaver.dev"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Namespaced kinds
KIND_APP = "App"
KIND_HOST = "Host"
KIND_PAGE_ARCHETYPE = "PageArchetype"
KIND_PAGE_BINDING = "PageBinding"
KIND_PAGE_FOOTER = "PageFooter"
KIND_PAGE_HEADER = "PageHeader"
KIND_PAGE_NAVIGATION = "PageNavigation"
KIND_SCRIPT_LIBRARY = "ScriptLibrary"
KIND_THEME = "Theme"
KIND_TRANSLATION = "Translation"
KIND_UTILITY_PAGE = "UtilityPage"

# Cluster-scoped variants
KIND_CLUSTER_APP = "ClusterApp"
KIND_CLUSTER_PAGE_ARCHETYPE = "ClusterPageArchetype"
KIND_CLUSTER_PAGE_FOOTER = "ClusterPageFooter"
KIND_CLUSTER_PAGE_HEADER = "ClusterPageHeader"
KIND_CLUSTER_PAGE_NAVIGATION = "ClusterPageNavigation"
KIND_CLUSTER_SCRIPT_LIBRARY = "ClusterScriptLibrary"
KIND_CLUSTER_THEME = "ClusterTheme"
KIND_CLUSTER_UTILITY_PAGE = "ClusterUtilityPage"

# Derived kinds, written only by the operator
KIND_INTERNAL_TRANSLATION = "InternalTranslation"

# Core kinds
KIND_CONFIG_MAP = "ConfigMap"
KIND_SECRET = "Secret"

PAGE_BINDING_FINALIZER = "weaver.dev/page-binding-finalizer"
TRANSLATION_FINALIZER = "weaver.dev/translation-finalizer"
DEPENDENCY_CHANGED_ANNOTATION = "weaver.dev/dependency-changed"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY = "weaver"
PAGE_BINDING_LABEL = "weaver.dev/page-binding"
TRANSLATION_LABEL = "weaver.dev/translation"
GENERATION_LABEL = "weaver.dev/generation"
