"""
Execution planning for agent workflows.

Sequential and parallel workflows run regular agents by ascending order with
the final agent last. Custom workflows are a real DAG: dependency edges are
derived from reads_from/writes_to and input_from/output_to, then resolved
with a topological sort (ties broken by order). A cycle fails fast with
WorkflowCycleError before any model call is made.
"""

import heapq
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ..models.workflow import AgentDefinition, AgentWorkflow, ExecutionOrder
from .errors import WorkflowCycleError

logger = logging.getLogger("scenecraft.workflow")


@dataclass
class ExecutionPlan:
    """Resolved run order for one workflow."""
    mode: ExecutionOrder
    regular: List[AgentDefinition]
    final: AgentDefinition
    dependencies: Dict[str, Set[str]] = field(default_factory=dict)

    @property
    def ordered(self) -> List[AgentDefinition]:
        return [*self.regular, self.final]


def build_dependency_graph(workflow: AgentWorkflow) -> Dict[str, Set[str]]:
    """Map each agent id to the ids of the agents it depends on."""
    ids = {agent.id for agent in workflow.agents}
    producers: Dict[str, List[str]] = {}
    for agent in workflow.agents:
        for key in agent.output_keys():
            producers.setdefault(key, []).append(agent.id)

    deps: Dict[str, Set[str]] = {agent.id: set() for agent in workflow.agents}
    for agent in workflow.agents:
        for key in agent.reads_from:
            for producer in producers.get(key, []):
                if producer != agent.id:
                    deps[agent.id].add(producer)
        for source in agent.input_from:
            if source in ids:
                if source != agent.id:
                    deps[agent.id].add(source)
            elif source in producers:
                deps[agent.id].update(p for p in producers[source] if p != agent.id)
            elif source != "input":
                logger.debug(f"[build_dependency_graph] '{agent.id}' reads unknown source '{source}'")
        for target in agent.output_to:
            if target in ids and target != agent.id:
                deps[target].add(agent.id)

    final_id = workflow.final_agent().id
    deps[final_id].update(agent_id for agent_id in ids if agent_id != final_id)
    return deps


def _find_cycle(deps: Dict[str, Set[str]], remaining: Set[str]) -> List[str]:
    visiting: List[str] = []
    on_stack: Set[str] = set()
    done: Set[str] = set()

    def visit(node: str) -> Optional[List[str]]:
        visiting.append(node)
        on_stack.add(node)
        for dep in sorted(deps[node] & remaining):
            if dep in on_stack:
                start = visiting.index(dep)
                return visiting[start:] + [dep]
            if dep not in done:
                cycle = visit(dep)
                if cycle:
                    return cycle
        visiting.pop()
        on_stack.discard(node)
        done.add(node)
        return None

    for node in sorted(remaining):
        if node not in done:
            cycle = visit(node)
            if cycle:
                # deps point consumer -> producer; report in execution direction
                return list(reversed(cycle))
    return sorted(remaining)


def topological_order(workflow: AgentWorkflow) -> List[AgentDefinition]:
    """Kahn's algorithm over the dependency graph, ties broken by order."""
    deps = build_dependency_graph(workflow)
    ordered_agents = workflow.sorted_agents()
    rank = {agent.id: i for i, agent in enumerate(ordered_agents)}
    by_id = {agent.id: agent for agent in ordered_agents}

    dependents: Dict[str, Set[str]] = {agent_id: set() for agent_id in deps}
    for agent_id, producers in deps.items():
        for producer in producers:
            dependents[producer].add(agent_id)

    indegree = {agent_id: len(producers) for agent_id, producers in deps.items()}
    heap = [(rank[agent_id], agent_id) for agent_id, degree in indegree.items() if degree == 0]
    heapq.heapify(heap)

    result: List[AgentDefinition] = []
    while heap:
        _, agent_id = heapq.heappop(heap)
        result.append(by_id[agent_id])
        for dependent in dependents[agent_id]:
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                heapq.heappush(heap, (rank[dependent], dependent))

    if len(result) < len(deps):
        remaining = set(deps) - {agent.id for agent in result}
        cycle = _find_cycle(deps, remaining)
        logger.error(f"[topological_order] Cycle detected: {cycle}")
        raise WorkflowCycleError(cycle)

    return result


def plan_execution(workflow: AgentWorkflow) -> ExecutionPlan:
    """Resolve the run order; raises WorkflowCycleError for cyclic custom workflows."""
    final = workflow.final_agent()

    if workflow.execution_order == ExecutionOrder.CUSTOM:
        ordered = topological_order(workflow)
        return ExecutionPlan(
            mode=workflow.execution_order,
            regular=[agent for agent in ordered if agent.id != final.id],
            final=final,
            dependencies=build_dependency_graph(workflow),
        )

    return ExecutionPlan(
        mode=workflow.execution_order,
        regular=workflow.regular_agents(),
        final=final,
    )
