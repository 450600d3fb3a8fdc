"""Systema component container.

Systema wires an application together from named components. A container
discovers components lazily, by key, from several sources, and can be finalized
into a frozen registry once the application has booted.

Key Features:
    - Components auto-registered from source files under configured directories
    - Namespaces mapping directory paths to key prefixes
    - Providers with prepare/start/stop lifecycles for external dependencies
    - Hand-written registration files, loaded by a key's root segment
    - Importing other containers under a namespace, with local registrations winning
    - Settings loaded with pydantic-settings, injection, stubbing for tests
    - Plugins publishing method calls and dependency registrations as events

Basic Usage:
    >>> from systema.container import Container
    >>>
    >>> container = Container(root="/path/to/app")
    >>> container.config.component_dirs.add("lib")
    >>>
    >>> @container.register_provider("logger")
    >>> class Logger(ProviderSource):
    ...     def start(self):
    ...         self.register("logger", structlog.get_logger())
    >>>
    >>> container["articles.create"]  # lib/articles/create.py, class Create
    >>> container["logger"]           # starts the logger provider
    >>> container.finalize()

The package consists of these modules:
    - container: The container and its resolution algorithm
    - registry: The underlying key/value registry, items and stubs
    - identifier: Component keys and namespace operations
    - config: Container, component dir and namespace configuration
    - component, component_dir, loader, inflector: Finding and loading component files
    - auto_registrar, manifest_registrar, importer: Eager discovery strategies
    - provider, provider_source, provider_registrar, provider_source_registry:
      Provider lifecycles
    - settings, plugins, injector: Built-in settings source, plugins and injection
    - notifications, monitoring: Events for the monitoring and dependency graph plugins
    - errors: Exceptions
"""
