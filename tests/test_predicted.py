import warnings

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm
import statsmodels.formula.api as smf
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier
from statsmodels.miscmodels.ordinal_model import OrderedModel

from modelinsight import (
    ConfigurationError,
    MissingValueWarning,
    ModelFamily,
    PredictionResult,
    UnsupportedFeatureWarning,
    find_family,
    get_predicted
)


@pytest.fixture
def simple_data():
    np.random.seed(0)
    n = 100
    df = pd.DataFrame({
        'x1': np.random.randn(n),
        'x2': np.random.randn(n),
    })
    df['y'] = 1.0 + 2.0 * df['x1'] - 0.5 * df['x2'] + np.random.randn(n)
    return df


@pytest.fixture
def ordinal_data():
    np.random.seed(0)
    n = 200
    df = pd.DataFrame({
        'x1': np.random.randn(n),
        'x2': np.random.randn(n),
    })
    latent = 1.0 * df['x1'] - 0.5 * df['x2'] + np.random.logistic(size=n)
    df['rating'] = pd.cut(latent, [-np.inf, -0.7, 0.7, np.inf], labels=['low', 'mid', 'high'])
    return df


@pytest.fixture
def ordinal_fit(ordinal_data):
    model = OrderedModel.from_formula("rating ~ x1 + x2", data=ordinal_data, distr='probit')
    return model.fit(method='bfgs', disp=False)


@pytest.fixture
def ordered_logit_fit(ordinal_data):
    model = OrderedModel.from_formula("rating ~ x1 + x2", data=ordinal_data, distr='logit')
    return model.fit(method='bfgs', disp=False)


@pytest.fixture
def choice_data():
    np.random.seed(1)
    n = 300
    df = pd.DataFrame({
        'x1': np.random.randn(n),
        'x2': np.random.randn(n),
    })
    utility = np.column_stack([
        np.zeros(n),
        0.5 + 1.0 * df['x1'],
        -0.5 + 1.0 * df['x2'],
    ]) + np.random.gumbel(size=(n, 3))
    df['choice'] = utility.argmax(axis=1)
    return df


@pytest.fixture
def mnlogit_fit(choice_data):
    return smf.mnlogit("choice ~ x1 + x2", data=choice_data).fit(disp=False)


@pytest.fixture
def classifier_data(choice_data):
    X = choice_data[['x1', 'x2']]
    labels = np.array(['A', 'B', 'C'])[choice_data['choice'].to_numpy()]
    return X, labels


def test_find_family(simple_data, ordinal_fit, ordered_logit_fit, mnlogit_fit, classifier_data):
    X, labels = classifier_data
    assert find_family(ordinal_fit) is ModelFamily.ORDINAL
    assert find_family(ordered_logit_fit) is ModelFamily.ORDERED_LOGIT
    assert find_family(mnlogit_fit) is ModelFamily.MULTINOMIAL
    assert find_family(smf.ols("y ~ x1", data=simple_data).fit()) is ModelFamily.LINEAR
    assert find_family(smf.rlm("y ~ x1", data=simple_data).fit()) is ModelFamily.ROBUST_LINEAR
    assert find_family(LogisticRegression().fit(X, labels)) is ModelFamily.PENALIZED_MULTINOMIAL
    assert find_family(KNeighborsClassifier().fit(X, labels)) is ModelFamily.CLASSIFIER
    forest = RandomForestClassifier(n_estimators=10, random_state=0).fit(X, labels)
    assert find_family(forest) is ModelFamily.CLASSIFIER
    with pytest.raises(TypeError):
        find_family(object())


def test_ordinal_long_format(ordinal_fit, ordinal_data):
    result = get_predicted(ordinal_fit, ci=0.95)
    assert isinstance(result, PredictionResult)
    n = len(ordinal_data)
    preds = result.predictions
    assert list(preds.columns) == ['Row', 'Response', 'Predicted']
    assert len(preds) == 3 * n
    assert list(preds['Response'].cat.categories) == ['low', 'mid', 'high']
    # grouped by category in model order, then by row
    assert (preds['Response'].iloc[:n].astype(str) == 'low').all()
    assert (preds['Response'].iloc[n:2 * n].astype(str) == 'mid').all()
    assert list(preds['Row'].iloc[:n]) == list(range(1, n + 1))
    np.testing.assert_allclose(preds.groupby('Row')['Predicted'].sum(), 1.0)


def test_ordinal_intervals(ordinal_fit):
    result = get_predicted(ordinal_fit, ci=0.95)
    assert list(result.ci_data.columns) == ['Row', 'Response', 'SE', 'CI_low', 'CI_high']
    merged = result.as_data_frame()
    assert len(merged) == len(result.predictions)
    assert (merged['SE'] >= 0).all()
    assert (merged['CI_low'] <= merged['Predicted'] + 1e-12).all()
    assert (merged['Predicted'] <= merged['CI_high'] + 1e-12).all()
    assert (merged['CI_low'] >= 0).all() and (merged['CI_high'] <= 1).all()


def test_ordinal_without_ci_keeps_se(ordinal_fit):
    result = get_predicted(ordinal_fit)
    assert result.ci is None
    assert list(result.ci_data.columns) == ['Row', 'Response', 'SE']


def test_ordinal_new_data(ordinal_fit, ordinal_data):
    new = ordinal_data.iloc[:2]
    result = get_predicted(ordinal_fit, data=new)
    assert len(result.predictions) == 6
    assert list(result.predictions['Row']) == [1, 2, 1, 2, 1, 2]
    assert list(result.predictions['Response'].astype(str)) == ['low', 'low', 'mid', 'mid', 'high', 'high']


def test_ordinal_classification(ordinal_fit, ordinal_data):
    result = get_predicted(ordinal_fit, predict='classification')
    assert list(result.predictions.columns) == ['Row', 'Predicted']
    assert len(result) == len(ordinal_data)
    assert set(result.predictions['Predicted']) <= {'low', 'mid', 'high'}
    assert result.ci_data is None


def test_classification_with_ci_warns(ordinal_fit):
    with pytest.warns(UnsupportedFeatureWarning, match="not available for classification"):
        result = get_predicted(ordinal_fit, predict='classification', ci=0.95)
    assert result.ci is None
    assert result.ci_data is None
    assert 'CI_low' not in result.as_data_frame().columns


def test_classification_with_ci_quiet(ordinal_fit):
    with warnings.catch_warnings(record=True) as record:
        warnings.simplefilter("always")
        get_predicted(ordinal_fit, predict='classification', ci=0.95, verbose=False)
    assert not any(issubclass(w.category, UnsupportedFeatureWarning) for w in record)


def test_warning_can_be_escalated(ordinal_fit):
    with warnings.catch_warnings():
        warnings.simplefilter("error", UnsupportedFeatureWarning)
        with pytest.raises(UnsupportedFeatureWarning):
            get_predicted(ordinal_fit, predict='classification', ci=0.95)


def test_native_type(ordinal_fit):
    probs = get_predicted(ordinal_fit, predict=None, type='prob')
    classes = get_predicted(ordinal_fit, predict=None, type='class')
    assert probs.predict == 'expectation'
    assert classes.predict == 'classification'
    with pytest.raises(ConfigurationError):
        get_predicted(ordinal_fit, predict=None)
    with pytest.raises(ConfigurationError):
        get_predicted(ordinal_fit, predict=None, type='response')


def test_invalid_arguments(ordinal_fit):
    with pytest.raises(ConfigurationError):
        get_predicted(ordinal_fit, predict='link')
    with pytest.raises(ConfigurationError):
        get_predicted(ordinal_fit, ci=1.5)
    with pytest.raises(TypeError):
        get_predicted(ordinal_fit, iterations=10)
    with pytest.raises(TypeError):
        get_predicted(object())


def test_mnlogit(mnlogit_fit, choice_data):
    n = len(choice_data)
    result = get_predicted(mnlogit_fit, ci=0.95)
    preds = result.predictions
    assert len(preds) == 3 * n
    levels = list(preds['Response'].cat.categories)
    assert len(levels) == 3
    first = preds.loc[preds['Response'] == levels[0], 'Predicted']
    np.testing.assert_allclose(first, np.asarray(mnlogit_fit.predict())[:, 0], rtol=1e-6)
    np.testing.assert_allclose(preds.groupby('Row')['Predicted'].sum(), 1.0)
    merged = result.as_data_frame()
    assert (merged['CI_low'] <= merged['Predicted'] + 1e-12).all()
    assert (merged['Predicted'] <= merged['CI_high'] + 1e-12).all()


def test_mnlogit_classification(mnlogit_fit, choice_data):
    result = get_predicted(mnlogit_fit, predict='classification')
    assert len(result) == len(choice_data)
    assert result.predictions['Predicted'].nunique() <= 3


def test_linear_matches_statsmodels(simple_data):
    res = smf.ols("y ~ x1 + x2", data=simple_data).fit()
    result = get_predicted(res, ci=0.9)
    frame = res.get_prediction().summary_frame(alpha=0.1)
    merged = result.as_data_frame()
    assert list(merged.columns) == ['Row', 'Predicted', 'SE', 'CI_low', 'CI_high']
    np.testing.assert_allclose(merged['Predicted'], frame['mean'])
    np.testing.assert_allclose(merged['SE'], frame['mean_se'])
    np.testing.assert_allclose(merged['CI_low'], frame['mean_ci_lower'])
    np.testing.assert_allclose(merged['CI_high'], frame['mean_ci_upper'])


def test_linear_nan_ci_means_no_interval(simple_data):
    res = smf.ols("y ~ x1 + x2", data=simple_data).fit()
    result = get_predicted(res, ci=np.nan)
    assert result.ci is None
    assert list(result.ci_data.columns) == ['Row', 'SE']


def test_linear_rejects_classification(simple_data):
    res = smf.ols("y ~ x1", data=simple_data).fit()
    with pytest.raises(ConfigurationError):
        get_predicted(res, predict='classification')
    native = get_predicted(res, predict=None, type='response')
    assert native.predict == 'expectation'


def test_omitted_and_none_data_agree(simple_data):
    res = smf.ols("y ~ x1 + x2", data=simple_data).fit()
    pd.testing.assert_frame_equal(
        get_predicted(res).predictions,
        get_predicted(res, data=None).predictions
    )


def test_missing_values_warning(simple_data):
    res = smf.ols("y ~ x1 + x2", data=simple_data).fit()
    new = simple_data.iloc[:4].copy()
    new.loc[new.index[2], 'x1'] = np.nan
    with pytest.warns(MissingValueWarning):
        result = get_predicted(res, data=new)
    predicted = result.predictions['Predicted']
    assert np.isnan(predicted.iloc[2])
    assert predicted.drop(index=2).notnull().all()


def test_robust_linear(simple_data):
    exog = sm.add_constant(simple_data[['x1', 'x2']])
    res = sm.RLM(simple_data['y'], exog).fit()
    result = get_predicted(res, ci=0.95)
    np.testing.assert_allclose(result.predictions['Predicted'], res.fittedvalues)
    merged = result.as_data_frame()
    assert (merged['CI_low'] <= merged['Predicted']).all()
    with pytest.raises(ConfigurationError):
        get_predicted(res, predict='classification')


def test_penalized_multinomial(classifier_data):
    X, labels = classifier_data
    clf = LogisticRegression().fit(X, labels)
    with pytest.warns(UnsupportedFeatureWarning):
        result = get_predicted(clf, data=X, ci=0.95)
    assert result.ci_data is None
    assert list(result.predictions['Response'].cat.categories) == ['A', 'B', 'C']
    assert len(result) == 3 * len(X)
    np.testing.assert_allclose(
        result.predictions['Predicted'].iloc[:len(X)],
        clf.predict_proba(X)[:, 0]
    )


def test_classifier_requires_data(classifier_data):
    X, labels = classifier_data
    clf = LogisticRegression().fit(X, labels)
    with pytest.raises(ConfigurationError):
        get_predicted(clf)
    result = get_predicted(clf, data=X, predict='classification')
    assert list(result.predictions['Predicted']) == list(clf.predict(X))


def test_summary_runs(ordinal_fit, capsys):
    get_predicted(ordinal_fit, ci=0.95).summary(max_rows=5)
    out = capsys.readouterr().out
    assert "Predictions Summary" in out
    assert "Confidence level: 95%" in out
    assert "more rows" in out


def test_repr_and_keys(ordinal_fit):
    result = get_predicted(ordinal_fit)
    assert result.keys == ['Row', 'Response']
    assert "ordinal" in repr(result)


def test_ordinal_matches_native_probabilities(ordinal_fit, ordinal_data):
    n = len(ordinal_data)
    preds = get_predicted(ordinal_fit).predictions
    native = np.asarray(ordinal_fit.predict())
    for j, level in enumerate(['low', 'mid', 'high']):
        np.testing.assert_allclose(
            preds.loc[preds['Response'] == level, 'Predicted'],
            native[:, j],
            rtol=1e-6
        )
    assert len(preds) == 3 * n


def test_ordered_logit_uses_multinomial_types(ordered_logit_fit, ordinal_data):
    n = len(ordinal_data)
    result = get_predicted(ordered_logit_fit, predict=None, type='probs', ci=0.95)
    assert result.family is ModelFamily.ORDERED_LOGIT
    assert list(result.ci_data.columns) == ['Row', 'Response', 'SE', 'CI_low', 'CI_high']
    assert len(result) == 3 * n
    np.testing.assert_allclose(
        result.predictions['Predicted'].iloc[:n],
        np.asarray(ordered_logit_fit.predict())[:, 0],
        rtol=1e-6
    )
    classes = get_predicted(ordered_logit_fit, predict=None, type='class')
    assert set(classes.predictions['Predicted']) <= {'low', 'mid', 'high'}
    with pytest.raises(ConfigurationError):
        get_predicted(ordered_logit_fit, predict=None, type='prob')


def test_generic_classifier_has_no_intervals(classifier_data):
    X, labels = classifier_data
    forest = RandomForestClassifier(n_estimators=10, random_state=0).fit(X, labels)
    with pytest.warns(UnsupportedFeatureWarning):
        result = get_predicted(forest, data=X, ci=0.95)
    assert result.family is ModelFamily.CLASSIFIER
    assert result.ci_data is None
    assert list(result.predictions['Response'].cat.categories) == ['A', 'B', 'C']


def test_saturated_probabilities_stay_inside_interval(mnlogit_fit):
    new = pd.DataFrame({'x1': [40.0, 0.0], 'x2': [0.0, -40.0]})
    merged = get_predicted(mnlogit_fit, data=new, ci=0.95).as_data_frame()
    assert (merged['CI_low'] <= merged['Predicted']).all()
    assert (merged['Predicted'] <= merged['CI_high']).all()


def test_multinomial_none_and_omitted_data_agree(mnlogit_fit):
    omitted = get_predicted(mnlogit_fit, ci=0.95)
    explicit = get_predicted(mnlogit_fit, data=None, ci=0.95)
    pd.testing.assert_frame_equal(omitted.predictions, explicit.predictions)
    pd.testing.assert_frame_equal(omitted.ci_data, explicit.ci_data)


def test_classifier_none_and_omitted_data_agree(classifier_data):
    X, labels = classifier_data
    clf = LogisticRegression().fit(X, labels)
    for kwargs in ({}, {'data': None}):
        with pytest.raises(ConfigurationError, match="Please provide `data`"):
            get_predicted(clf, **kwargs)
    first = get_predicted(clf, data=X)
    second = get_predicted(clf, data=X.copy())
    pd.testing.assert_frame_equal(first.predictions, second.predictions)
    assert first.ci_data is None and second.ci_data is None


def test_linear_full_confidence_level(simple_data):
    res = smf.ols("y ~ x1 + x2", data=simple_data).fit()
    merged = get_predicted(res, ci=1).as_data_frame()
    assert np.isneginf(merged['CI_low']).all()
    assert np.isposinf(merged['CI_high']).all()


def test_multinomial_intervals_need_explicit_level(mnlogit_fit):
    result = get_predicted(mnlogit_fit)
    assert result.ci is None
    assert list(result.ci_data.columns) == ['Row', 'Response', 'SE']
    assert "ci=0.95" in get_predicted.__doc__
