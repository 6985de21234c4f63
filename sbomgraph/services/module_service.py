from collections import deque

import structlog

from sbomgraph.models.resolution import Module

logger = structlog.get_logger('module_service')


class ModuleClosureFinder:
    """Finds every module reachable from a root module through inter-module declarations."""

    def find(self, root: Module) -> tuple[Module, ...]:
        logger.info('Collecting module dependencies', root=root.path)

        discovered: dict[str, Module] = {root.path: root}
        queue: deque[Module] = deque([root])

        while queue:
            current = queue.popleft()
            for scope in current.scopes:
                if not scope.can_be_resolved:
                    continue
                try:
                    targets = list(scope.module_dependencies())
                except Exception as e:
                    logger.debug(
                        'Could not read scope declarations',
                        module=current.path, scope=scope.name, error=str(e),
                    )
                    continue

                for target in targets:
                    if target.path in discovered:
                        continue
                    discovered[target.path] = target
                    queue.append(target)
                    logger.debug(
                        'Found module dependency', module=target.path,
                        via=f"{current.path}:{scope.name}",
                    )

        modules = tuple(discovered.values())
        logger.info(
            'Module closure complete', root=root.path,
            modules=[m.path for m in modules],
        )
        return modules
