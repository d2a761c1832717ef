"""
FastAPI Gateway for the Causal DAG Toolkit.
Exposes path enumeration, adjustment set computation and variable advice
over declarative causal graphs.
"""
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from contextlib import asynccontextmanager
import time
from loguru import logger

from .models import (
    GraphRequest, PathsRequest, PathsResponse, PathModel, TripleModel,
    AdjustmentSetsResponse, VariablesResponse, VariableAdviceModel, HealthStatus
)
from causal_dag import (
    AdjustmentSetSolver,
    CausalDAG,
    CausalDAGError,
    NoValidAdjustmentSetError,
    PathFinder,
    SearchLimitError,
    build_dag,
    dagify,
)
from monitoring.metrics import MetricsCollector
from utils.config import configure_logging, get_settings


settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and publish system info"""
    configure_logging(settings)
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")
    MetricsCollector.set_system_info({
        "version": settings.app_version,
        "environment": settings.environment,
    })
    yield
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title="Causal DAG Toolkit API",
    description="Backdoor paths and adjustment sets for causal DAGs",
    version=settings.app_version,
    lifespan=lifespan
)

if settings.enable_cors:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

if settings.enable_metrics:
    Instrumentator().instrument(app).expose(app)


def _build_graph(request: GraphRequest) -> CausalDAG:
    """Build the DAG described by a request, enforcing the size limit"""
    dag = build_dag(
        request.formulas,
        exposure=request.exposure,
        outcome=request.outcome,
        labels=request.labels,
        coords=request.coords,
        unobserved=request.unobserved,
    )
    if len(dag) > settings.max_graph_nodes:
        raise HTTPException(
            status_code=413,
            detail=f"Graph has {len(dag)} nodes; limit is {settings.max_graph_nodes}"
        )
    MetricsCollector.record_graph_size(len(dag))
    return dag


def _solver(dag: CausalDAG) -> AdjustmentSetSolver:
    return AdjustmentSetSolver(
        dag,
        max_set_size=settings.max_adjustment_set_size,
        max_paths=settings.max_paths
    )


def _error_response(error: Exception, endpoint: str) -> HTTPException:
    """Map library errors to HTTP errors"""
    error_type = type(error).__name__
    if isinstance(error, SearchLimitError):
        MetricsCollector.record_graph_error(error_type)
        MetricsCollector.record_request("too_large", endpoint)
        logger.warning(f"{endpoint}: {error}")
        return HTTPException(status_code=413, detail=f"{error_type}: {error}")
    if isinstance(error, NoValidAdjustmentSetError):
        MetricsCollector.record_graph_error(error_type)
        MetricsCollector.record_request("unidentifiable", endpoint)
        logger.warning(f"{endpoint}: {error}")
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, CausalDAGError):
        MetricsCollector.record_graph_error(error_type)
        MetricsCollector.record_request("invalid", endpoint)
        logger.warning(f"{endpoint}: {error_type}: {error}")
        return HTTPException(status_code=400, detail=f"{error_type}: {error}")

    MetricsCollector.record_request("error", endpoint)
    logger.exception(f"{endpoint} error: {str(error)}")
    return HTTPException(status_code=500, detail=str(error))


@app.get("/health", response_model=HealthStatus)
async def health_check():
    """Run a fork graph through every component"""
    components = {}
    try:
        dag = dagify("x ~ q", "y ~ q", exposure="x", outcome="y")
        components["graph"] = True
    except CausalDAGError:
        dag = None
        components["graph"] = False

    try:
        components["path_finder"] = dag is not None and len(PathFinder(dag).find_paths()) == 1
    except CausalDAGError:
        components["path_finder"] = False

    try:
        components["adjustment_solver"] = (
            dag is not None
            and AdjustmentSetSolver(dag).find_adjustment_sets() == [frozenset({"q"})]
        )
    except CausalDAGError:
        components["adjustment_solver"] = False

    for component, healthy in components.items():
        MetricsCollector.update_component_health(component, healthy)

    return HealthStatus(
        status="healthy" if all(components.values()) else "degraded",
        components=components,
        version=settings.app_version
    )


@app.post("/v1/paths", response_model=PathsResponse)
def enumerate_paths(request: PathsRequest):
    """
    Enumerate simple paths between exposure and outcome.

    Each path is classified as causal or backdoor and reported open or
    blocked given the request's conditioning set.
    """
    start_time = time.time()
    try:
        dag = _build_graph(request)
        finder = PathFinder(dag, max_paths=settings.max_paths)
        collection = finder.find_paths(
            conditioned=request.conditioned,
            open_only=request.open_only
        )
        paths = [
            PathModel(
                nodes=list(path.nodes),
                text=str(path),
                kind=path.kind.value,
                is_open=path.is_open,
                enters_exposure=path.enters_exposure,
                colliders=list(path.colliders),
                triples=[
                    TripleModel(x=x, q=q, y=y, kind=kind.value)
                    for x, q, y, kind in path.triples()
                ],
            )
            for path in collection
        ]
    except HTTPException:
        raise
    except Exception as e:
        raise _error_response(e, "paths")

    elapsed = time.time() - start_time
    MetricsCollector.record_latencies({"paths": elapsed})
    MetricsCollector.record_paths({
        "causal": sum(1 for path in paths if path.kind == "causal"),
        "backdoor": sum(1 for path in paths if path.kind == "backdoor"),
    })
    MetricsCollector.record_request("success", "paths")

    return PathsResponse(
        exposure=collection.exposure,
        outcome=collection.outcome,
        conditioned=sorted(collection.conditioned),
        paths=paths,
        processing_time_ms=elapsed * 1000
    )


@app.post("/v1/adjustment-sets", response_model=AdjustmentSetsResponse)
def adjustment_sets(request: GraphRequest):
    """Every minimal adjustment set; 422 when none exists"""
    start_time = time.time()
    try:
        dag = _build_graph(request)
        solver = _solver(dag)
        exposure, outcome = solver.finder.resolve_endpoints()
        found = solver.find_adjustment_sets(exposure, outcome)
    except HTTPException:
        raise
    except Exception as e:
        raise _error_response(e, "adjustment-sets")

    elapsed = time.time() - start_time
    MetricsCollector.record_latencies({"solver": elapsed})
    MetricsCollector.record_adjustment_sets(len(found))
    MetricsCollector.record_request("success", "adjustment-sets")

    return AdjustmentSetsResponse(
        exposure=exposure,
        outcome=outcome,
        adjustment_sets=[sorted(adjustment_set) for adjustment_set in found],
        processing_time_ms=elapsed * 1000
    )


@app.post("/v1/variables", response_model=VariablesResponse)
def variable_advice(request: GraphRequest):
    """Per-variable advice: adjust for members of a minimal set, never for mediators"""
    try:
        dag = _build_graph(request)
        solver = _solver(dag)
        exposure, outcome = solver.finder.resolve_endpoints()
        advice = solver.classify_variables(exposure, outcome)
        try:
            found = solver.find_adjustment_sets(exposure, outcome)
        except NoValidAdjustmentSetError:
            found = []
    except HTTPException:
        raise
    except Exception as e:
        raise _error_response(e, "variables")

    MetricsCollector.record_request("success", "variables")

    return VariablesResponse(
        exposure=exposure,
        outcome=outcome,
        identifiable=bool(found),
        adjustment_sets=[sorted(adjustment_set) for adjustment_set in found],
        variables=[
            VariableAdviceModel(
                node_id=item.node_id,
                category=item.category.value,
                should_adjust=item.should_adjust,
                reason=item.reason,
            )
            for item in advice.values()
        ]
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "operational"
    }


def main():
    """Run the gateway with uvicorn"""
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
